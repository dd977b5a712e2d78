"""
Tag handling shared by every taggable resource.

KeyValueTags is the single tag-set type: it knows how to read the tag
shapes AWS APIs return, how to drop provider-internal keys, and how to
diff itself against a desired set. reconcile_tags applies such a diff
with at most one untag call and one tag call.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Callable, Optional

from provider_toolkit.common.errors import TagUpdateError

AWS_RESERVED_PREFIX = "aws:"


class KeyValueTags(Mapping):
    """Immutable mapping of tag keys to tag values."""

    def __init__(self, tags: Optional[Mapping] = None):
        data = {}
        for key, value in (tags or {}).items():
            data[str(key)] = "" if value is None else str(value)
        self._data = data

    @classmethod
    def from_tag_list(cls, tag_list, key_field: str = "Key", value_field: str = "Value"):
        """Build tags from the [{"Key": ..., "Value": ...}] shape most AWS APIs use."""
        return cls({tag[key_field]: tag.get(value_field) for tag in tag_list or []})

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self._data) == dict(other)
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._data.items()))

    def __repr__(self):
        return f"KeyValueTags({self._data!r})"

    def keys_list(self) -> list[str]:
        """Sorted tag keys, the shape untag calls expect."""
        return sorted(self._data)

    def to_dict(self) -> dict[str, str]:
        return dict(self._data)

    def to_tag_list(self, key_field: str = "Key", value_field: str = "Value") -> list[dict]:
        """Render tags in the list-of-pairs shape, sorted by key."""
        return [{key_field: key, value_field: self._data[key]} for key in sorted(self._data)]

    def ignore_prefixes(self, prefixes: Iterable[str]) -> "KeyValueTags":
        prefixes = tuple(prefixes)
        if not prefixes:
            return self
        return KeyValueTags({k: v for k, v in self._data.items() if not k.startswith(prefixes)})

    def ignore_keys(self, keys: Iterable[str]) -> "KeyValueTags":
        ignored = set(keys)
        return KeyValueTags({k: v for k, v in self._data.items() if k not in ignored})

    def ignore_aws(self) -> "KeyValueTags":
        """Drop AWS-managed tags, which can never be set or removed by callers."""
        return self.ignore_prefixes((AWS_RESERVED_PREFIX,))

    def ignore_config(self, config: Optional["IgnoreTagsConfig"]) -> "KeyValueTags":
        if config is None:
            return self
        return self.ignore_keys(config.keys).ignore_prefixes(config.key_prefixes)

    def merge(self, other: Mapping) -> "KeyValueTags":
        """Return a copy with other's keys laid over this set."""
        merged = dict(self._data)
        merged.update(KeyValueTags(other))
        return KeyValueTags(merged)

    def removed(self, new: Mapping) -> "KeyValueTags":
        """Tags present here but absent from new."""
        return KeyValueTags({k: v for k, v in self._data.items() if k not in new})

    def updated(self, new: Mapping) -> "KeyValueTags":
        """Tags from new whose value here differs or is missing."""
        new_tags = KeyValueTags(new)
        return KeyValueTags({k: v for k, v in new_tags.items() if self._data.get(k) != v})

    def apply(self, removed: Iterable[str], updated: Mapping) -> "KeyValueTags":
        """Apply a diff: drop removed keys, then set updated values."""
        result = self.ignore_keys(removed).to_dict()
        result.update(KeyValueTags(updated))
        return KeyValueTags(result)


@dataclass(frozen=True)
class IgnoreTagsConfig:
    """Tag keys and key prefixes the provider never manages."""

    keys: frozenset = frozenset()
    key_prefixes: tuple = ()


@dataclass(frozen=True)
class DefaultTagsConfig:
    """Provider-wide tags applied to every taggable resource."""

    tags: KeyValueTags = field(default_factory=KeyValueTags)

    def merge_tags(self, tags: Optional[Mapping]) -> KeyValueTags:
        """Resource tags win over the provider defaults."""
        return self.tags.merge(tags or {})

    def remove_default_config(self, tags: Mapping) -> KeyValueTags:
        """Strip keys whose value came from the defaults, leaving resource-level tags."""
        observed = KeyValueTags(tags)
        return KeyValueTags(
            {k: v for k, v in observed.items() if self.tags.get(k) != v}
        )


@dataclass(frozen=True)
class TagDiff:
    """Keys to untag and key/value pairs to tag."""

    removed: KeyValueTags
    updated: KeyValueTags

    @property
    def is_empty(self) -> bool:
        return not self.removed and not self.updated


def diff_tags(
    old_tags: Optional[Mapping],
    new_tags: Optional[Mapping],
    ignore_config: Optional[IgnoreTagsConfig] = None,
) -> TagDiff:
    """Compute the minimal change from old_tags to new_tags, ignoring reserved keys."""
    old = KeyValueTags(old_tags).ignore_aws().ignore_config(ignore_config)
    new = KeyValueTags(new_tags).ignore_aws().ignore_config(ignore_config)
    return TagDiff(removed=old.removed(new), updated=old.updated(new))


def reconcile_tags(
    old_tags: Optional[Mapping],
    new_tags: Optional[Mapping],
    apply_add: Callable[[dict], object],
    apply_remove: Callable[[list], object],
    ignore_config: Optional[IgnoreTagsConfig] = None,
) -> TagDiff:
    """
    Converge a resource's tags from old_tags to new_tags.

    Removals are applied before additions. A key whose value changes is
    sent only in the tag call. Errors from either callback propagate
    unchanged; retrying is the caller's decision.

    Args:
        old_tags: Tags currently recorded for the resource
        new_tags: Desired tags
        apply_add: Called once with {key: value} for added or changed tags
        apply_remove: Called once with the sorted list of removed keys
        ignore_config: Extra keys/prefixes to leave untouched

    Returns:
        TagDiff: The diff that was applied (empty when nothing changed)
    """
    diff = diff_tags(old_tags, new_tags, ignore_config)
    if diff.removed:
        logging.debug("Removing tags: %s", diff.removed.keys_list())
        apply_remove(diff.removed.keys_list())
    if diff.updated:
        logging.debug("Adding or updating tags: %s", diff.updated.keys_list())
        apply_add(diff.updated.to_dict())
    return diff


def update_tags(
    client,
    identifier: str,
    old_tags: Optional[Mapping],
    new_tags: Optional[Mapping],
    *,
    tag_method: str = "tag_resource",
    untag_method: str = "untag_resource",
    identifier_field: str = "ResourceArn",
    tags_field: str = "Tags",
    keys_field: str = "TagKeys",
    tags_as_list: bool = True,
    ignore_config: Optional[IgnoreTagsConfig] = None,
) -> TagDiff:
    """
    Reconcile tags through a boto3 client's tag/untag operations.

    Services disagree on method names, identifier field names and whether
    tags travel as a list of Key/Value pairs or as a plain map, so all of
    those are parameters.

    Raises:
        TagUpdateError: If the tag or untag call fails
    """

    def _remove(keys: list) -> None:
        try:
            getattr(client, untag_method)(**{identifier_field: identifier, keys_field: keys})
        except Exception as exc:
            raise TagUpdateError(f"error untagging resource ({identifier}): {exc}") from exc

    def _add(tags: dict) -> None:
        payload = KeyValueTags(tags).to_tag_list() if tags_as_list else dict(tags)
        try:
            getattr(client, tag_method)(**{identifier_field: identifier, tags_field: payload})
        except Exception as exc:
            raise TagUpdateError(f"error tagging resource ({identifier}): {exc}") from exc

    return reconcile_tags(old_tags, new_tags, _add, _remove, ignore_config)
