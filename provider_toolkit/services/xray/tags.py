"""X-Ray resource tags (groups and sampling rules)."""

from __future__ import annotations

from provider_toolkit.common.aws_client_factory import XRAY
from provider_toolkit.common.tag_utils import KeyValueTags, update_tags as reconcile_service_tags


def list_tags(aws_client, identifier: str) -> KeyValueTags:
    """
    List X-Ray tags for a resource ARN, following pagination tokens.

    Returns:
        KeyValueTags: Tags with AWS-reserved and ignored keys removed
    """
    conn = aws_client.client(XRAY)
    params = {"ResourceARN": identifier}
    tags = []
    while True:
        output = conn.list_tags_for_resource(**params)
        tags.extend(output.get("Tags", []))
        token = output.get("NextToken")
        if not token:
            break
        params["NextToken"] = token
    return KeyValueTags.from_tag_list(tags).ignore_aws().ignore_config(aws_client.ignore_tags)


def update_tags(aws_client, identifier: str, old_tags, new_tags):
    """Converge X-Ray tags on identifier from old_tags to new_tags."""
    return reconcile_service_tags(
        aws_client.client(XRAY),
        identifier,
        old_tags,
        new_tags,
        identifier_field="ResourceARN",
        ignore_config=aws_client.ignore_tags,
    )
