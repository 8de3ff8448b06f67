"""Strip development-only build comments from plugin code.

A plugin may carry a block opened by a line starting ``#if`` and closed by a
line starting ``#endif``. The block runs inside the live development host
but never ships, so the builder and the checksum generator remove it.
"""

from __future__ import annotations

import re

BUILD_COMMENT_PATTERN = re.compile(r"^#if.*?^#endif", re.MULTILINE | re.DOTALL)


def strip_build_comments(code: str) -> str:
    """Remove the first ``#if`` ... ``#endif`` development block from ``code``.

    Code without an ``#if`` marker is returned unchanged.

    Examples
    --------
    >>> strip_build_comments("echo 1;")
    'echo 1;'
    >>> strip_build_comments("#if devonly\\necho 1;\\n#endif")
    ''
    """
    if "#if" not in code:
        return code
    return BUILD_COMMENT_PATTERN.sub("", code.strip(), count=1)


__all__ = ["BUILD_COMMENT_PATTERN", "strip_build_comments"]
