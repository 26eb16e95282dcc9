"""Specialization classification for incoming tasks.

This module provides:
- SpecializationClassifier: scores a description and file list against
  per-specialization keyword and extension patterns
- TaskFeatureExtractor: swappable step that derives the file list from a task
- RegexFileExtractor: default extractor matching short-extension tokens

Scoring:
- Keyword pattern found in the lower-cased description: +1
- Extension glob ("*.sql") matching the end of a file name: +2
- Keyword pattern found inside a file name: +1

The strictly highest score wins. Ties go to the specialization declared
first in Specialization; all-zero scores yield GENERAL.

Usage:
    classifier = SpecializationClassifier()
    tag = classifier.classify("Add index to users table", ["schema.sql"])
    # Specialization.DATABASE
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import re
from typing import Protocol

from switchyard.core.models import Specialization, WorkItem, parse_specialization
from switchyard.observability.logging import get_logger

log = get_logger(__name__)


DEFAULT_PATTERNS: Mapping[Specialization, tuple[str, ...]] = {
    Specialization.FRONTEND: (
        "*.html", "*.css", "*.scss", "*.js", "*.jsx", "*.ts", "*.tsx",
        "react", "vue", "angular", "svelte", "webpack", "babel", "eslint",
        "ui", "ux", "responsive", "mobile", "desktop", "web",
    ),
    Specialization.BACKEND: (
        "*.js", "*.ts", "*.py", "*.java", "*.go", "*.rb", "*.php", "*.cs",
        "api", "rest", "graphql", "server", "endpoint", "controller",
        "middleware", "authentication", "authorization", "security",
    ),
    Specialization.DATABASE: (
        "*.sql", "*.prisma", "*.schema", "migration",
        "database", "db", "sql", "nosql", "mongodb", "postgres", "mysql",
        "query", "index", "transaction", "orm", "entity", "model",
    ),
    Specialization.DEVOPS: (
        "Dockerfile", "docker-compose.yml", "*.yaml", "*.yml",
        "kubernetes", "k8s", "helm", "terraform", "ansible",
        "ci", "cd", "pipeline", "deploy", "build", "test",
        "monitoring", "logging", "metrics", "alert",
    ),
    Specialization.GENERAL: (),
}


def is_extension_glob(pattern: str) -> bool:
    """Return True for patterns of the form "*.ext"."""
    return pattern.startswith("*.") and len(pattern) > 2


class TaskFeatureExtractor(Protocol):
    """Derives the file names a task touches."""

    def extract_files(self, item: WorkItem) -> list[str]:
        ...


class RegexFileExtractor:
    """Pull file-like tokens ("auth.py", "docker-compose.yml") out of free text.

    Only the description is scanned, lower-cased. Extensions are limited to
    2-4 letters, so "v1.2" or "e.g" style tokens mostly fall through.
    """

    FILE_PATTERN = re.compile(r"\b[\w-]+\.[a-z]{2,4}\b")

    def extract_files(self, item: WorkItem) -> list[str]:
        return self.FILE_PATTERN.findall(item.description.lower())


class SpecializationClassifier:
    """Score-based specialization classifier.

    The pattern table is copied at construction; add_patterns() extends the
    copy without touching DEFAULT_PATTERNS.
    """

    def __init__(
        self,
        patterns: Mapping[Specialization, Iterable[str]] | None = None,
    ) -> None:
        source = DEFAULT_PATTERNS if patterns is None else patterns
        self._patterns: dict[Specialization, list[str]] = {
            tag: list(source.get(tag, ())) for tag in Specialization
        }

    def add_patterns(self, specialization: Specialization | str, patterns: Iterable[str]) -> None:
        """Append patterns to a specialization, skipping ones already present."""
        tag = parse_specialization(specialization)
        existing = self._patterns[tag]
        added: list[str] = []
        for p in patterns:
            if p and p not in existing:
                existing.append(p)
                added.append(p)

        log.debug("classifier.patterns.added", specialization=tag.value, count=len(added))

    def patterns(self, specialization: Specialization | str) -> list[str]:
        return list(self._patterns[parse_specialization(specialization)])

    def score(self, description: str, files: Sequence[str] = ()) -> dict[Specialization, int]:
        """Return the raw score per specialization, in declaration order."""
        scores = {tag: 0 for tag in Specialization}

        lower_description = (description or "").lower()
        for tag, patterns in self._patterns.items():
            for pattern in patterns:
                if not is_extension_glob(pattern) and pattern.lower() in lower_description:
                    scores[tag] += 1

        for file_name in files:
            lower_file = file_name.lower()
            for tag, patterns in self._patterns.items():
                for pattern in patterns:
                    if is_extension_glob(pattern):
                        if lower_file.endswith(pattern[1:].lower()):
                            scores[tag] += 2
                    elif pattern.lower() in lower_file:
                        scores[tag] += 1

        return scores

    def classify(self, description: str, files: Sequence[str] = ()) -> Specialization:
        """Return the best-matching specialization. Never raises."""
        best = Specialization.GENERAL
        best_score = 0
        for tag, value in self.score(description, files).items():
            if value > best_score:
                best, best_score = tag, value
        return best

    def classify_item(
        self,
        item: WorkItem,
        extractor: TaskFeatureExtractor | None = None,
    ) -> Specialization:
        """Classify a work item using its description and extracted files."""
        files = (extractor or RegexFileExtractor()).extract_files(item)
        tag = self.classify(item.description, files)

        log.debug(
            "classifier.task.classified",
            task_id=item.id,
            specialization=tag.value,
            files=files,
        )
        return tag


__all__ = [
    "DEFAULT_PATTERNS",
    "RegexFileExtractor",
    "SpecializationClassifier",
    "TaskFeatureExtractor",
    "is_extension_glob",
]
