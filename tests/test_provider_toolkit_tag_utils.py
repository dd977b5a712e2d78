"""Tests for provider_toolkit/common/tag_utils.py"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from provider_toolkit.common.errors import TagUpdateError
from provider_toolkit.common.tag_utils import (
    DefaultTagsConfig,
    IgnoreTagsConfig,
    KeyValueTags,
    diff_tags,
    reconcile_tags,
    update_tags,
)
from tests.aws_test_utils import make_client_error


def _recorder():
    calls = []
    return (
        calls,
        lambda tags: calls.append(("add", tags)),
        lambda keys: calls.append(("remove", keys)),
    )


def test_key_value_tags_normalizes_none_values():
    tags = KeyValueTags({"env": None, "team": "core"})
    assert tags == {"env": "", "team": "core"}
    assert len(tags) == 2


def test_from_tag_list_reads_key_value_pairs():
    tags = KeyValueTags.from_tag_list(
        [{"Key": "env", "Value": "prod"}, {"Key": "owner", "Value": "alice"}]
    )
    assert tags.to_dict() == {"env": "prod", "owner": "alice"}


def test_from_tag_list_custom_field_names():
    tags = KeyValueTags.from_tag_list([{"TagKey": "a", "TagValue": "1"}], "TagKey", "TagValue")
    assert tags == {"a": "1"}


def test_to_tag_list_is_sorted_by_key():
    tags = KeyValueTags({"b": "2", "a": "1"})
    assert tags.to_tag_list() == [{"Key": "a", "Value": "1"}, {"Key": "b", "Value": "2"}]
    assert tags.keys_list() == ["a", "b"]


def test_ignore_aws_drops_reserved_prefix():
    tags = KeyValueTags({"aws:cloudformation:stack-name": "s", "env": "prod"})
    assert tags.ignore_aws() == {"env": "prod"}


def test_ignore_config_drops_keys_and_prefixes():
    config = IgnoreTagsConfig(keys=frozenset({"LastScanned"}), key_prefixes=("kubernetes.io/",))
    tags = KeyValueTags({"LastScanned": "today", "kubernetes.io/cluster/x": "owned", "env": "dev"})
    assert tags.ignore_config(config) == {"env": "dev"}
    assert tags.ignore_config(None) is tags


def test_merge_prefers_other_values():
    merged = KeyValueTags({"env": "prod", "team": "core"}).merge({"env": "dev"})
    assert merged == {"env": "dev", "team": "core"}


def test_diff_matches_documented_example():
    diff = diff_tags({"env": "prod", "temp": "x"}, {"env": "staging", "owner": "alice"})

    assert diff.removed.keys_list() == ["temp"]
    assert diff.updated == {"env": "staging", "owner": "alice"}


def test_reconcile_removes_before_adding():
    calls, add, remove = _recorder()

    reconcile_tags({"env": "prod", "temp": "x"}, {"env": "staging", "owner": "alice"}, add, remove)

    assert calls == [("remove", ["temp"]), ("add", {"env": "staging", "owner": "alice"})]


def test_changed_value_goes_only_to_tag_call():
    calls, add, remove = _recorder()

    reconcile_tags({"env": "prod"}, {"env": "dev"}, add, remove)

    assert calls == [("add", {"env": "dev"})]


def test_reconcile_is_noop_when_tags_equal():
    calls, add, remove = _recorder()

    diff = reconcile_tags({"a": "1"}, {"a": "1"}, add, remove)

    assert diff.is_empty
    assert not calls


def test_reconcile_handles_missing_old_or_new():
    calls, add, remove = _recorder()

    reconcile_tags(None, {"a": "1"}, add, remove)
    reconcile_tags({"b": "2"}, None, add, remove)

    assert calls == [("add", {"a": "1"}), ("remove", ["b"])]


def test_reconcile_never_touches_aws_tags():
    calls, add, remove = _recorder()

    reconcile_tags(
        {"aws:createdBy": "svc", "env": "prod"},
        {"aws:other": "x", "env": "prod"},
        add,
        remove,
    )

    assert not calls


def test_reconcile_respects_ignore_config():
    calls, add, remove = _recorder()
    config = IgnoreTagsConfig(key_prefixes=("ops:",))

    reconcile_tags({"ops:ticket": "1", "env": "a"}, {"env": "b"}, add, remove, config)

    assert calls == [("add", {"env": "b"})]


@pytest.mark.parametrize(
    "old,new",
    [
        ({}, {"a": "1"}),
        ({"a": "1", "b": "2"}, {"b": "3", "c": "4"}),
        ({"a": "1"}, {}),
        ({"x": ""}, {"x": "y"}),
    ],
)
def test_applying_diff_yields_new_tags(old, new):
    diff = diff_tags(old, new)
    assert KeyValueTags(old).apply(diff.removed.keys_list(), diff.updated) == new


def test_diff_is_empty_after_applying():
    old, new = {"a": "1", "b": "2"}, {"b": "3"}
    diff = diff_tags(old, new)
    applied = KeyValueTags(old).apply(diff.removed, diff.updated)
    assert diff_tags(applied, new).is_empty


def test_default_tags_merge_and_removal():
    defaults = DefaultTagsConfig(KeyValueTags({"owner": "platform", "env": "prod"}))

    merged = defaults.merge_tags({"env": "dev", "app": "api"})
    assert merged == {"owner": "platform", "env": "dev", "app": "api"}

    assert defaults.remove_default_config(merged) == {"env": "dev", "app": "api"}
    assert defaults.merge_tags(None) == {"owner": "platform", "env": "prod"}


def test_update_tags_calls_client_operations():
    client = MagicMock()

    update_tags(client, "arn:aws:xray:us-west-2:1:group/g", {"a": "1", "b": "2"}, {"b": "3"})

    client.untag_resource.assert_called_once_with(
        ResourceArn="arn:aws:xray:us-west-2:1:group/g", TagKeys=["a"]
    )
    client.tag_resource.assert_called_once_with(
        ResourceArn="arn:aws:xray:us-west-2:1:group/g", Tags=[{"Key": "b", "Value": "3"}]
    )


def test_update_tags_map_payload():
    client = MagicMock()

    update_tags(client, "res-1", {}, {"a": "1"}, identifier_field="ResourceId", tags_as_list=False)

    client.tag_resource.assert_called_once_with(ResourceId="res-1", Tags={"a": "1"})
    client.untag_resource.assert_not_called()


def test_update_tags_wraps_untag_failure_and_skips_tagging():
    client = MagicMock()
    error = make_client_error("AccessDeniedException", "not allowed")
    client.untag_resource.side_effect = error

    with pytest.raises(TagUpdateError, match=r"error untagging resource \(r-1\)") as exc_info:
        update_tags(client, "r-1", {"a": "1"}, {"b": "2"})

    assert exc_info.value.__cause__ is error
    client.tag_resource.assert_not_called()


def test_update_tags_wraps_tag_failure():
    client = MagicMock()
    client.tag_resource.side_effect = make_client_error("ValidationException", "bad tag")

    with pytest.raises(TagUpdateError, match="error tagging resource"):
        update_tags(client, "r-1", {}, {"b": "2"})
