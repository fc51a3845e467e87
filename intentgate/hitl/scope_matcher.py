"""
Scope Matcher

Decides whether proposed file paths fall inside an intent's owned scope,
and extracts the file paths touched by a unified diff.

Scope pattern mini-language (evaluated in this order, first match wins):
    1. Exact path:       src/services/auth.ts
    2. Directory prefix: src/auth/          (any depth below src/auth/)
    3. Glob:             src/*/hook.ts, src/**/hooks.ts, src/?.ts

Glob semantics:
    **  any characters, including "/"
    *   any characters except "/"
    ?   exactly one character except "/"

Stateless: nothing here mutates the patterns it is given.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence

_UNIFIED_HEADER = re.compile(r"^[+-]{3}\s[ab]/(.+)$")
_GIT_HEADER = re.compile(r"^diff --git a/(.+) b/.+$")


@dataclass
class ScopeValidationResult:
    """Outcome of a scope check. Transient, never persisted."""

    within_scope: bool
    reason: Optional[str] = None
    allowed_paths: Optional[List[str]] = None
    attempted_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"within_scope": self.within_scope}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.allowed_paths is not None:
            data["allowed_paths"] = list(self.allowed_paths)
        if self.attempted_path is not None:
            data["attempted_path"] = self.attempted_path
        return data


def normalize_path(path: str) -> str:
    """Use "/" as the only separator."""
    return path.replace("\\", "/")


@lru_cache(maxsize=512)
def glob_to_regex(glob: str) -> Pattern[str]:
    """
    Compile a scope glob into an anchored regular expression.

    Everything except the glob operators is matched literally.
    """
    parts: List[str] = []
    i = 0
    while i < len(glob):
        if glob.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        ch = glob[i]
        if ch == "*":
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


def matches_pattern(path: str, pattern: str) -> bool:
    """Match an already-normalized path against one scope pattern."""
    normalized = normalize_path(pattern)

    if path == normalized:
        return True

    if normalized.endswith("/"):
        return path.startswith(normalized)

    return glob_to_regex(normalized).fullmatch(path) is not None


class ScopeMatcher:
    """Pure pattern matching over file paths and diff text."""

    @staticmethod
    def is_path_in_scope(path: str, patterns: Sequence[str]) -> ScopeValidationResult:
        """
        Check one path against the owned scope.

        An empty scope never matches.
        """
        if not patterns:
            return ScopeValidationResult(
                within_scope=False,
                reason="No scope defined for this intent",
                attempted_path=path,
            )

        normalized = normalize_path(path)
        for pattern in patterns:
            if matches_pattern(normalized, pattern):
                return ScopeValidationResult(within_scope=True, allowed_paths=list(patterns))

        return ScopeValidationResult(
            within_scope=False,
            reason=f'File "{path}" is outside the intent\'s owned_scope',
            allowed_paths=list(patterns),
            attempted_path=path,
        )

    @classmethod
    def are_paths_in_scope(
        cls, paths: Iterable[str], patterns: Sequence[str]
    ) -> ScopeValidationResult:
        """All-or-nothing check: every path must be in scope."""
        outside = [p for p in paths if not cls.is_path_in_scope(p, patterns).within_scope]

        if not outside:
            return ScopeValidationResult(within_scope=True, allowed_paths=list(patterns))

        return ScopeValidationResult(
            within_scope=False,
            reason=f"{len(outside)} file(s) outside scope: {', '.join(outside)}",
            allowed_paths=list(patterns),
            attempted_path=outside[0],
        )

    @staticmethod
    def extract_files_from_diff(diff_text: str) -> List[str]:
        """
        Collect file paths referenced by diff headers.

        Recognizes "--- a/<path>", "+++ b/<path>" and
        "diff --git a/<path> b/<path>". Order is first-seen, duplicates
        dropped. Unrecognized lines are ignored.
        """
        files: Dict[str, None] = {}
        if not diff_text:
            return []

        for line in diff_text.splitlines():
            match = _UNIFIED_HEADER.match(line)
            if match:
                files.setdefault(match.group(1), None)

            git_match = _GIT_HEADER.match(line)
            if git_match:
                files.setdefault(git_match.group(1), None)

        return list(files)
