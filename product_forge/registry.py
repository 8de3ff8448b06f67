"""Lookup of phrase groups that already ship with the host platform.

The options processor asks a :class:`PhraseGroupRegistry` which group keys
exist globally so it does not ship a duplicate ``settinggroup_<key>`` title
phrase for a group the host already owns. The phrases processor asks it for
the display title of a host group when a project adds phrases to one without
naming it.
"""

from __future__ import annotations

import typing as typ

from ._constants import (
    NAVIGATION_PHRASE_GROUP,
    NAVIGATION_PHRASE_TITLE,
    SETTINGS_PHRASE_GROUP,
    SETTINGS_PHRASE_TITLE,
    TASK_PHRASE_GROUP,
    TASK_PHRASE_TITLE,
)

DEFAULT_GLOBAL_PHRASE_GROUPS: frozenset[str] = frozenset(
    {
        "global",
        "cpglobal",
        "cphome",
        "cpoption",
        "cpuser",
        "cron",
        "error",
        "front_end_error",
        "holiday",
        "posting",
        "profilefield",
        "register",
        "reputationlevel",
        "search",
        "showthread",
        "user",
        "vbsettings",
        "wol",
        "forumdisplay",
        "calendar",
        "messaging",
        "inlinemod",
        "timezone",
        "postbit",
        "fronthelp",
        "cphelptext",
        "maintenance",
        "language",
        "style",
        "banning",
        "thread",
        "forum",
        "attachment_image",
        "hvquestion",
    }
)

DEFAULT_PHRASE_GROUP_TITLES: typ.Mapping[str, str] = {
    NAVIGATION_PHRASE_GROUP: NAVIGATION_PHRASE_TITLE,
    SETTINGS_PHRASE_GROUP: SETTINGS_PHRASE_TITLE,
    TASK_PHRASE_GROUP: TASK_PHRASE_TITLE,
}


class PhraseGroupRegistry(typ.Protocol):
    """Source of phrase-group keys owned by the host rather than a product."""

    def list_global_phrase_group_keys(self) -> frozenset[str]:
        """Return the keys of every global, non-product phrase group."""
        ...

    def phrase_group_title(self, key: str) -> str | None:
        """Return the display title of host group ``key``, if it is one."""
        ...


class StaticPhraseGroupRegistry:
    """Registry backed by a fixed set of group keys.

    Host groups without an entry in ``titles`` are titled by their key; the
    host matches imported phrase types on the key alone.
    """

    def __init__(
        self,
        keys: typ.Iterable[str] | None = None,
        titles: typ.Mapping[str, str] | None = None,
    ) -> None:
        self._keys = (
            DEFAULT_GLOBAL_PHRASE_GROUPS
            if keys is None
            else frozenset(str(key) for key in keys)
        )
        self._titles = dict(DEFAULT_PHRASE_GROUP_TITLES if titles is None else titles)

    def list_global_phrase_group_keys(self) -> frozenset[str]:
        """Return the configured group keys."""
        return self._keys

    def phrase_group_title(self, key: str) -> str | None:
        """Return the title for host group ``key`` or ``None`` for other keys."""
        if key not in self._keys:
            return None
        return self._titles.get(key, key)


__all__ = [
    "DEFAULT_GLOBAL_PHRASE_GROUPS",
    "DEFAULT_PHRASE_GROUP_TITLES",
    "PhraseGroupRegistry",
    "StaticPhraseGroupRegistry",
]
