"""Placement policy for records created without an explicit rank."""

from __future__ import annotations


class NewItemAt:
    HIGHEST = "highest"
    LOWEST = "lowest"
    UNRANKED = "unranked"

    ALL = (HIGHEST, LOWEST, UNRANKED)


__all__ = ["NewItemAt"]
