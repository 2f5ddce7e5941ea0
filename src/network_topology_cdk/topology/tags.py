"""Tag merging."""

from typing import Mapping


def merge_tags(base: Mapping[str, str], override: Mapping[str, str]) -> dict[str, str]:
    """Right-biased merge of two tag mappings.

    Keys in ``override`` win on conflict; every other key of ``base`` passes
    through unchanged. Neither input is modified.

    Example:
        >>> merge_tags({"Team": "net", "Name": "x"}, {"Name": "main-vpc"})
        {'Team': 'net', 'Name': 'main-vpc'}
    """
    merged = dict(base)
    merged.update(override)
    return merged


def named_tags(tags: Mapping[str, str], name: str) -> dict[str, str]:
    """Network-wide tags with the per-resource ``Name`` applied."""
    return merge_tags(tags, {"Name": name})
