"""Matches free-form biomarker names to catalog standards."""

import re
import unicodedata
from dataclasses import dataclass
from typing import ClassVar

import icu  # type: ignore[import-untyped]
from rapidfuzz import fuzz, process

from labworker.database.models import BiomarkerStandard


class NameNormalizer:
    """Folds names from any script to lowercase ASCII alphanumeric tokens."""

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII; Lower"
    _TOKEN_RE: ClassVar[re.Pattern[str]] = re.compile(r"[a-z0-9]+")

    def __init__(self) -> None:
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )

    def normalize(self, name: str) -> str:
        text = unicodedata.normalize("NFC", name or "")
        transliterated = self._transliterator.transliterate(text)
        return " ".join(self._TOKEN_RE.findall(transliterated))


@dataclass(frozen=True)
class MatchResult:
    standard: BiomarkerStandard | None
    score: float = 0.0
    issue: str | None = None


class BiomarkerMatcher:
    """Exact lookup on name, code and aliases, then fuzzy token_sort_ratio."""

    def __init__(
        self,
        standards: list[BiomarkerStandard],
        *,
        threshold: float = 90.0,
        ambiguity_margin: float = 2.0,
        normalizer: NameNormalizer | None = None,
    ) -> None:
        self._threshold = threshold
        self._ambiguity_margin = ambiguity_margin
        self._normalizer = normalizer or NameNormalizer()
        self._exact: dict[str, BiomarkerStandard] = {}
        self._choice_keys: list[str] = []
        self._choice_standards: list[BiomarkerStandard] = []

        for standard in standards:
            for label in (standard.name, standard.code, *standard.aliases):
                key = self._normalizer.normalize(label)
                if not key:
                    continue
                self._exact.setdefault(key, standard)
                self._exact.setdefault(key.replace(" ", ""), standard)
                self._choice_keys.append(key)
                self._choice_standards.append(standard)

    def match(self, name: str) -> MatchResult:
        key = self._normalizer.normalize(name)
        if not key:
            return MatchResult(standard=None, issue="Biomarker name is empty")

        exact = self._exact.get(key) or self._exact.get(key.replace(" ", ""))
        if exact is not None:
            return MatchResult(standard=exact, score=100.0)

        hits = process.extract(
            key,
            self._choice_keys,
            scorer=fuzz.token_sort_ratio,
            score_cutoff=self._threshold,
            limit=None,
        )
        best_by_code: dict[str, tuple[float, BiomarkerStandard]] = {}
        for _, score, index in hits:
            standard = self._choice_standards[index]
            current = best_by_code.get(standard.code)
            if current is None or score > current[0]:
                best_by_code[standard.code] = (float(score), standard)

        if not best_by_code:
            return MatchResult(standard=None)

        ranked = sorted(best_by_code.values(), key=lambda item: item[0], reverse=True)
        best_score, best = ranked[0]
        if len(ranked) > 1 and best_score - ranked[1][0] <= self._ambiguity_margin:
            runner_up = ranked[1][1]
            return MatchResult(
                standard=None,
                score=best_score,
                issue=(
                    f"Ambiguous match between '{best.name}' ({best.code}) "
                    f"and '{runner_up.name}' ({runner_up.code})"
                ),
            )
        return MatchResult(standard=best, score=best_score)
