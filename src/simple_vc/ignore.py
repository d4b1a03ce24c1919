"""Ignore rule matching for simple-vc.

Every line of the rule file is compiled once, at load time, into one of two
matchers:

- GlobRule: the line contains glob magic (``*``, ``?``, ``[``) and is a
  well-formed glob. ``*`` matches zero or more characters, including ``/``.
- RegexRule: anything else, compiled as a regular expression.

Both are anchored to the full project-relative path. A rule ending in ``/``
only matches directories, which the tracker presents with a trailing slash.

The preview helper answers a different question ("what does this rule catch
on disk?") using gitignore semantics from pathspec, so it may list paths the
anchored matcher would not exclude (``debug.log`` also catches
``sub/debug.log`` in a preview). The two are deliberately kept separate.
"""

import fnmatch
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern

from .constants import COMMENT_PREFIXES, SVC_DIR
from .errors import InvalidPatternError
from .utils import atomic_write_text


logger = logging.getLogger(__name__)

GLOB_MAGIC = re.compile(r"[*?\[]")


class IgnoreRule:
    """A compiled ignore pattern."""

    kind = "rule"

    def __init__(self, pattern: str, regex: "re.Pattern[str]"):
        self.pattern = pattern
        self._regex = regex

    @property
    def directory_only(self) -> bool:
        return self.pattern.endswith("/")

    def matches(self, relpath: str) -> bool:
        return self._regex.fullmatch(relpath) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern!r})"


class GlobRule(IgnoreRule):
    """Shell-style glob, anchored to the whole path."""

    kind = "glob"

    def __init__(self, pattern: str):
        super().__init__(pattern, re.compile(fnmatch.translate(pattern)))


class RegexRule(IgnoreRule):
    """Regular expression, anchored to the whole path."""

    kind = "regex"

    def __init__(self, pattern: str):
        super().__init__(pattern, re.compile(pattern))


def _is_valid_glob(pattern: str) -> bool:
    """Check that a pattern reads as a glob.

    Character classes must be closed, and regex anchors (leading ``^`` or
    trailing ``$``) mark the line as a regular expression instead.
    """
    if pattern.startswith("^") or pattern.endswith("$"):
        return False
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            j = i + 1
            if pattern[j:j + 1] == "!":
                j += 1
            if pattern[j:j + 1] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                return False
            i = close
        i += 1
    return True


def compile_rule(pattern: str) -> IgnoreRule:
    """Select and build the matcher variant for one rule.

    Raises:
        InvalidPatternError: If the pattern is neither a glob nor a regex
    """
    if GLOB_MAGIC.search(pattern) and _is_valid_glob(pattern):
        return GlobRule(pattern)
    try:
        return RegexRule(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


def parse_rules(text: str) -> List[str]:
    """Split rule-file content into patterns, dropping blanks and comments."""
    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith(COMMENT_PREFIXES):
            patterns.append(line)
    return patterns


def load_rules(ignore_file: Path) -> List[str]:
    """Read the ordered list of patterns from a rule file (empty if absent)."""
    if not ignore_file.exists():
        return []
    return parse_rules(ignore_file.read_text(encoding="utf-8"))


def matches(relpath: str, rules: Iterable[IgnoreRule], is_dir: bool = False) -> bool:
    """True if any rule matches the path.

    Directories are tested both bare and with a trailing slash, so that
    ``build`` and ``build/`` style rules both exclude the subtree.
    """
    candidates = [relpath, relpath + "/"] if is_dir else [relpath]
    for rule in rules:
        if rule.directory_only and not is_dir:
            continue
        if any(rule.matches(c) for c in candidates):
            return True
    return False


def literal_rule(relpath: str) -> str:
    """Rule matching exactly one path, whatever characters it contains."""
    return "^" + re.escape(relpath) + "$"


def is_storage_path(relpath: str) -> bool:
    """True for the .svc directory and anything inside it."""
    return relpath == SVC_DIR or relpath.startswith(SVC_DIR + "/")


class IgnoreRules:
    """Ordered, editable set of ignore rules backed by a rule file.

    Edits (add/remove) only touch the in-memory list; call save() to persist.
    """

    def __init__(self, patterns: Iterable[str] = (), path: Optional[Path] = None):
        self.path = path
        self._patterns: List[str] = []
        self._rules: List[IgnoreRule] = []
        for pattern in patterns:
            self._append(pattern, strict=False)

    @classmethod
    def load(cls, path: Path) -> "IgnoreRules":
        """Load rules from a file; invalid lines are kept but never match."""
        return cls(load_rules(path), path=path)

    def _append(self, pattern: str, strict: bool) -> None:
        try:
            rule = compile_rule(pattern)
        except InvalidPatternError as e:
            if strict:
                raise
            logger.warning("Skipping ignore rule: %s", e)
        else:
            self._rules.append(rule)
        self._patterns.append(pattern)

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    @property
    def rules(self) -> List[IgnoreRule]:
        return list(self._rules)

    def add(self, pattern: str) -> bool:
        """Append a validated rule. Returns False if it was already present.

        Raises:
            InvalidPatternError: If the pattern is empty or invalid
        """
        pattern = pattern.strip()
        if not pattern:
            raise InvalidPatternError(pattern, "pattern cannot be empty")
        if pattern in self._patterns:
            return False
        self._append(pattern, strict=True)
        return True

    def remove(self, pattern: str) -> bool:
        """Remove a rule. Returns False if it was not present."""
        pattern = pattern.strip()
        if pattern not in self._patterns:
            return False
        self._patterns.remove(pattern)
        self._rules = [r for r in self._rules if r.pattern != pattern]
        return True

    def save(self, path: Optional[Path] = None) -> None:
        """Write rules back to the rule file, one per line."""
        target = path or self.path
        if target is None:
            raise ValueError("No rule file to save to")
        atomic_write_text(target, "".join(f"{p}\n" for p in self._patterns))

    def matches(self, relpath: str, is_dir: bool = False) -> bool:
        """Match a single walk entry (parents are assumed not ignored)."""
        if is_storage_path(relpath):
            return True
        return matches(relpath, self._rules, is_dir=is_dir)

    def is_ignored(self, relpath: str) -> bool:
        """Match a path that did not come from a walk, checking every parent."""
        parts = relpath.split("/")
        for i in range(1, len(parts)):
            if self.matches("/".join(parts[:i]), is_dir=True):
                return True
        return self.matches(relpath)

    def preview(self, root: Path) -> Dict[str, List[str]]:
        """Expand every rule against the live filesystem for inspection.

        Returns:
            Mapping of pattern -> sorted list of matching project paths
        """
        result: Dict[str, List[str]] = {}
        for pattern in self._patterns:
            rule = next((r for r in self._rules if r.pattern == pattern), None)
            if rule is None:
                result[pattern] = []
            elif isinstance(rule, GlobRule):
                spec = PathSpec.from_lines(GitWildMatchPattern, [pattern])
                result[pattern] = sorted(
                    Path(p).as_posix()
                    for p in spec.match_tree_files(str(root))
                    if not is_storage_path(Path(p).as_posix())
                )
            else:
                result[pattern] = _walk_matches(root, rule)
        return result


def _walk_matches(root: Path, rule: IgnoreRule) -> List[str]:
    """Walk the tree and collect entries matched by a single rule."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"
        dirnames[:] = [d for d in dirnames if not is_storage_path(prefix + d)]
        for name in dirnames:
            if matches(prefix + name, [rule], is_dir=True):
                found.append(prefix + name + "/")
        for name in filenames:
            if matches(prefix + name, [rule]):
                found.append(prefix + name)
    return sorted(found)
