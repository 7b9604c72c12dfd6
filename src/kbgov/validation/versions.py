"""Version Consistency Checker — version tags, legacy labels and sentinel initialization.

Scans every code sample of a document for its version declaration and the
prose for references to superseded versions. Pure function over a
``Document``; safe to run concurrently with the schema validator.

Rules:

=====  ========  =====================================================
Code   Severity  Finding
=====  ========  =====================================================
V001   ERROR     mixed-version corpus (samples declare different tags)
V002   ERROR     undeclared version (sample has no declaration)
V003   ERROR     sample declares more than one distinct tag
V004   WARNING   unlabeled legacy reference in prose
V005   ERROR     untyped sentinel initialization
=====  ========  =====================================================

The sentinel rule is exact. With the default sentinel ``na``::

    x = na                  invalid
    var x = na              invalid
    float x = na            valid
    var float x = na        valid
    array<float> xs = na    valid
    x := na                 not an initialization
    if x == na              not an initialization
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from kbgov.core.diagnostics import Severity, ValidationResult, Violation, ViolationKind
from kbgov.core.logging import get_logger
from kbgov.documents.model import CodeSample, Document
from kbgov.documents.parser import version_tag

logger = get_logger(__name__)

DEFAULT_LEGACY_MARKER = "[LEGACY]"
DEFAULT_SENTINEL = "na"

_DECLARATION_KEYWORDS = frozenset({"var", "varip"})
_QUALIFIERS = frozenset({"const", "simple", "series", "input"})

_UNTYPED_TARGET = re.compile(r"^[A-Za-z_]\w*$")
_TYPED_TARGET = re.compile(
    r"^(?:(?:const|simple|series|input)\s+)?"
    r"(?P<type>[A-Za-z_][\w.]*(?:\s*<[^<>]*(?:<[^<>]*>[^<>]*)*>)?(?:\[\])?)"
    r"\s+(?P<name>[A-Za-z_]\w*)$"
)
_VERSION_MENTION = re.compile(r"\b(?:[vV](?P<short>\d+)|[Vv]ersion\s+(?P<long>\d+))\b")


def _tag_number(tag: str) -> int:
    return int(tag.lstrip("v"))


@dataclass(frozen=True)
class SentinelFinding:
    """An untyped sentinel initialization inside a code sample.

    Attributes:
        line: 1-based line number within the document file.
        statement: The offending statement, stripped.
        target: The variable being initialized.
    """

    line: int
    statement: str
    target: str


class VersionChecker:
    """Check version declarations and sentinel initializations of a document.

    Parameters
    ----------
    legacy_marker
        Literal label that must accompany prose mentioning an older version.
    sentinel
        The typeless "not available" value.
    current_version
        Version assumed for the legacy-reference check when the samples of a
        document do not settle on one tag. ``None`` skips the check for such
        documents.
    """

    def __init__(
        self,
        *,
        legacy_marker: str = DEFAULT_LEGACY_MARKER,
        sentinel: str = DEFAULT_SENTINEL,
        current_version: int | None = None,
    ):
        self.legacy_marker = legacy_marker
        self.sentinel = sentinel
        self.current_version = current_version
        self._initialization = re.compile(
            r"^\s*(?P<decl>[A-Za-z_][^=]*?)\s*(?<![=!<>:+\-*/%])=(?![=>])\s*"
            + re.escape(sentinel)
            + r"\s*(?://.*)?$"
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def check(self, doc: Document) -> ValidationResult:
        """Run every version rule against ``doc``; never raises for findings."""
        violations: list[Violation] = []
        violations.extend(self._check_declarations(doc))
        violations.extend(self._check_mixed_versions(doc))
        violations.extend(self._check_legacy_references(doc))
        violations.extend(self._check_sentinels(doc))
        result = ValidationResult(path=doc.path, violations=tuple(violations))
        logger.debug("versions_checked", path=doc.path, summary=result.summary())
        return result

    def document_version(self, doc: Document) -> str | None:
        """The single version tag shared by every sample, if there is one."""
        tags = {tag for sample in doc.samples for tag in sample.distinct_tags}
        return next(iter(tags)) if len(tags) == 1 else None

    def find_untyped_sentinels(self, sample: CodeSample) -> list[SentinelFinding]:
        """Untyped sentinel initializations in one sample."""
        findings = []
        for offset, line in enumerate(sample.text.splitlines(), start=1):
            match = self._initialization.match(line)
            if match is None:
                continue
            target = self._untyped_target(match.group("decl"))
            if target is not None:
                findings.append(SentinelFinding(
                    line=sample.line + offset,
                    statement=line.strip(),
                    target=target,
                ))
        return findings

    # ------------------------------------------------------------------ #
    # Rules
    # ------------------------------------------------------------------ #

    def _check_declarations(self, doc: Document) -> list[Violation]:
        found = []
        for sample in doc.samples:
            distinct = sample.distinct_tags
            if not distinct:
                found.append(self._violation(
                    doc, "V002", Severity.ERROR,
                    f"undeclared version: {sample.label} has no version declaration",
                    location=sample.label,
                ))
            elif len(distinct) > 1:
                found.append(self._violation(
                    doc, "V003", Severity.ERROR,
                    f"{sample.label} declares {len(distinct)} version tags ({', '.join(distinct)}); "
                    "exactly one is allowed",
                    location=sample.label,
                ))
        return found

    def _check_mixed_versions(self, doc: Document) -> list[Violation]:
        tags = {tag for sample in doc.samples for tag in sample.distinct_tags}
        if len(tags) <= 1:
            return []
        offenders = [s for s in doc.samples if s.distinct_tags]
        named = ", ".join(f"{s.label} declares {'/'.join(s.distinct_tags)}" for s in offenders)
        return [self._violation(
            doc, "V001", Severity.ERROR,
            f"mixed-version corpus: {named}",
            location=", ".join(f"sample #{s.position}" for s in offenders),
        )]

    def _check_legacy_references(self, doc: Document) -> list[Violation]:
        current = self.document_version(doc)
        if current is None and self.current_version is not None:
            current = version_tag(self.current_version)
        if current is None:
            return []
        current_number = _tag_number(current)
        found = []
        for lineno, text in doc.prose_lines:
            if self.legacy_marker in text:
                continue
            for match in _VERSION_MENTION.finditer(text):
                number = int(match.group("short") or match.group("long"))
                if number < current_number:
                    found.append(self._violation(
                        doc, "V004", Severity.WARNING,
                        f"unlabeled legacy reference: prose mentions v{number} "
                        f"(document targets {current}) without '{self.legacy_marker}'",
                        location=f"line {lineno}",
                    ))
                    break
        return found

    def _check_sentinels(self, doc: Document) -> list[Violation]:
        found = []
        for sample in doc.samples:
            for finding in self.find_untyped_sentinels(sample):
                found.append(self._violation(
                    doc, "V005", Severity.ERROR,
                    f"untyped sentinel initialization: '{finding.statement}' must declare "
                    f"a type (e.g. 'float {finding.target} = {self.sentinel}')",
                    location=f"{sample.label}, line {finding.line}",
                ))
        return found

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _untyped_target(self, decl: str) -> str | None:
        """Variable name if ``decl`` initializes without a type, else None."""
        tokens = decl.split(None, 1)
        if len(tokens) == 2 and tokens[0] in _DECLARATION_KEYWORDS:
            decl = tokens[1].strip()
        if _UNTYPED_TARGET.match(decl):
            return decl
        typed = _TYPED_TARGET.match(decl)
        if typed and typed.group("type") in _QUALIFIERS:
            return typed.group("name")
        return None

    @staticmethod
    def _violation(
        doc: Document,
        code: str,
        severity: Severity,
        message: str,
        location: str | None = None,
    ) -> Violation:
        return Violation(
            code=code,
            severity=severity,
            kind=ViolationKind.VERSION,
            message=message,
            path=doc.path,
            location=location,
        )


def check(doc: Document) -> ValidationResult:
    """Check ``doc`` with the default checker."""
    return VersionChecker().check(doc)
