"""
Composite resource identifiers.

Some remote objects are addressed by more than one key, e.g. a Service
Catalog budget association is (budget name, resource id). The provider
state tracks a single string, so the parts are joined with a separator
that each resource kind documents.

Only the last part may contain the separator; parsing splits at most
part_count - 1 times.
"""

from __future__ import annotations

from provider_toolkit.common.errors import ResourceIdError

DEFAULT_SEPARATOR = ","


def create_resource_id(*parts: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """
    Join identifier parts into one state ID.

    Raises:
        ResourceIdError: If a part is empty or a leading part contains the
            separator, since such an ID could not be parsed back
    """
    if not parts:
        raise ResourceIdError("at least one identifier part is required")
    for part in parts:
        if not part:
            raise ResourceIdError(f"identifier parts must be non-empty: {list(parts)!r}")
    for part in parts[:-1]:
        if separator in part:
            raise ResourceIdError(f"identifier part {part!r} contains separator {separator!r}")
    return separator.join(parts)


def parse_resource_id(
    resource_id: str, part_count: int, separator: str = DEFAULT_SEPARATOR
) -> tuple[str, ...]:
    """
    Split a composite state ID back into its parts.

    Args:
        resource_id: ID produced by create_resource_id
        part_count: Number of parts the resource kind expects
        separator: Separator the resource kind uses

    Returns:
        tuple: The identifier parts, in creation order

    Raises:
        ResourceIdError: If the ID does not have exactly part_count non-empty parts
    """
    parts = tuple(resource_id.split(separator, part_count - 1))
    if len(parts) != part_count or not all(parts):
        expected = separator.join(f"PART{i + 1}" for i in range(part_count))
        raise ResourceIdError(f"unexpected format for ID ({resource_id}), expected {expected}")
    return parts
