# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

import copy

import pytest

from backupper import MalformedObjectError, ObjectClassifier, ObjectRecord, ResourceType
from constants import Partition

VERBS = ("get", "list", "patch", "update")
WIDGETS = ResourceType("widgets", "Widget", "example.com", "v1", True, VERBS)
NAMESPACES = ResourceType("namespaces", "Namespace", "", "v1", False, VERBS)
CRDS = ResourceType(
    "customresourcedefinitions",
    "CustomResourceDefinition",
    "apiextensions.k8s.io",
    "v1",
    False,
    VERBS,
)

WIDGET = {
    "apiVersion": "example.com/v1",
    "kind": "Widget",
    "metadata": {
        "name": "a",
        "namespace": "default",
        "uid": "abc-123",
        "resourceVersion": "4242",
        "generation": 3,
        "creationTimestamp": "2025-01-01T00:00:00Z",
        "labels": {"app": "shop"},
    },
    "spec": {"size": 2},
}


@pytest.fixture()
def classifier():
    """Return an ObjectClassifier with the default settings."""
    return ObjectClassifier()


@pytest.fixture()
def widget():
    """Return a fresh widget object."""
    return ObjectRecord(copy.deepcopy(WIDGET))


def test_sanitize_keeps_uid_as_label(classifier, widget):
    """Check the uid is moved to the original-uid label and other labels are kept."""
    classifier.sanitize(widget)

    assert widget.metadata["labels"] == {"app": "shop", "original-uid": "abc-123"}
    assert "uid" not in widget.metadata


def test_sanitize_creates_labels(classifier):
    """Check the labels mapping is created when absent."""
    obj = ObjectRecord({"metadata": {"name": "a", "uid": "abc-123"}})

    classifier.sanitize(obj)

    assert obj.metadata == {"name": "a", "labels": {"original-uid": "abc-123"}}


def test_sanitize_without_uid(classifier):
    """Check no label is added when the object has no uid."""
    obj = ObjectRecord({"metadata": {"name": "a", "resourceVersion": "1"}})

    classifier.sanitize(obj)

    assert obj.metadata == {"name": "a"}


def test_sanitize_strips_volatile_fields(classifier, widget):
    """Check server-assigned fields are removed and the rest is kept."""
    classifier.sanitize(widget)

    for field in ("uid", "resourceVersion", "generation", "creationTimestamp"):
        assert field not in widget.metadata
    assert widget.metadata["namespace"] == "default"
    assert widget.data["spec"] == {"size": 2}


def test_sanitize_is_idempotent(classifier, widget):
    """Check sanitizing twice gives the same object as sanitizing once."""
    classifier.sanitize(widget)
    once = copy.deepcopy(widget.data)

    classifier.sanitize(widget)

    assert widget.data == once


def test_sanitize_custom_label():
    """Check the uid label name is configurable."""
    obj = ObjectRecord({"metadata": {"name": "a", "uid": "abc-123"}})

    ObjectClassifier(uid_label="backupper.cattle.io/old-uid").sanitize(obj)

    assert obj.metadata["labels"] == {"backupper.cattle.io/old-uid": "abc-123"}


@pytest.mark.parametrize(
    "owner_references,partition",
    [
        (None, Partition.OWNERS),
        ([], Partition.OWNERS),
        ([{"kind": "Shop", "name": "main", "uid": "u-1"}], Partition.DEPENDENTS),
    ],
)
def test_classify_partition(classifier, widget, owner_references, partition):
    """Check the partition depends only on non-empty ownerReferences."""
    if owner_references is not None:
        widget.metadata["ownerReferences"] = owner_references

    placement = classifier.classify(widget, WIDGETS)

    assert placement.partition is partition
    assert not placement.privileged
    assert "uid" not in widget.metadata


@pytest.mark.parametrize("resource_type", [NAMESPACES, CRDS])
def test_classify_privileged(classifier, resource_type):
    """Check namespaces and CRDs are flagged for their dedicated directory."""
    obj = ObjectRecord({"metadata": {"name": "team-a"}})

    placement = classifier.classify(obj, resource_type)

    assert placement.privileged
    assert placement.partition is Partition.OWNERS


@pytest.mark.parametrize("finalizers", [None, []])
def test_classify_skips_finalizing_objects(caplog, classifier, widget, finalizers):
    """Check deleted objects without finalizers are skipped and left untouched."""
    widget.metadata["deletionTimestamp"] = "2025-01-02T00:00:00Z"
    if finalizers is not None:
        widget.metadata["finalizers"] = finalizers

    assert classifier.classify(widget, WIDGETS) is None
    assert widget.metadata["uid"] == "abc-123"
    assert "deleted with no finalizers" in caplog.text


def test_classify_keeps_objects_with_finalizers(classifier, widget):
    """Check deleted objects that still have finalizers are kept."""
    widget.metadata["deletionTimestamp"] = "2025-01-02T00:00:00Z"
    widget.metadata["finalizers"] = ["example.com/cleanup"]

    placement = classifier.classify(widget, WIDGETS)

    assert placement is not None
    assert placement.partition is Partition.OWNERS


def test_classify_malformed_object(classifier):
    """Check objects without metadata raise MalformedObjectError."""
    with pytest.raises(MalformedObjectError):
        classifier.classify(ObjectRecord({"kind": "Widget"}), WIDGETS)


def test_classify_malformed_owner_references(classifier):
    """Check ownerReferences that are not a list raise MalformedObjectError."""
    obj = ObjectRecord({"metadata": {"name": "a", "ownerReferences": "shop"}})

    with pytest.raises(MalformedObjectError):
        classifier.classify(obj, WIDGETS)
