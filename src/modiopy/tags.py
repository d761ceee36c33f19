"""Derive a ModioTags summary from a mod's free-text tags."""

from __future__ import annotations

from typing import Iterable

from .types_models import ApprovalStatus, ModioTags, RequiredStatus


def process_tags(tags: Iterable[str]) -> ModioTags:
    """
    Classify tags.

    Example
    -------
    >>> process_tags({"RequiredByAll", "Gameplay", "1.38"}).versions
    ['1.38']
    """
    tags = set(tags)
    if "RequiredByAll" in tags:
        required = RequiredStatus.REQUIRED_BY_ALL
    else:
        required = RequiredStatus.OPTIONAL

    if "Verified" in tags or "Auto-Verified" in tags:
        approval = ApprovalStatus.VERIFIED
    elif "Approved" in tags:
        approval = ApprovalStatus.APPROVED
    else:
        approval = ApprovalStatus.SANDBOX

    # game version tags look like "1.38"
    versions = sorted(t for t in tags if t[:1].isdigit())

    return ModioTags(
        qol="QoL" in tags,
        gameplay="Gameplay" in tags,
        audio="Audio" in tags,
        visual="Visual" in tags,
        framework="Framework" in tags,
        versions=versions,
        required_status=required,
        approval_status=approval,
    )
