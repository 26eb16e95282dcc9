"""Unit tests for switchyard.orchestration.classifier module."""

import pytest

from switchyard.core.models import Specialization, WorkItem
from switchyard.orchestration.classifier import (
    DEFAULT_PATTERNS,
    RegexFileExtractor,
    SpecializationClassifier,
    is_extension_glob,
)


@pytest.fixture
def classifier() -> SpecializationClassifier:
    return SpecializationClassifier()


class TestScoring:
    """Test the per-specialization scores."""

    def test_extension_match_outweighs_keyword(self, classifier: SpecializationClassifier) -> None:
        """A .sql file (2 points plus the "sql" keyword) beats a lone "api" keyword."""
        assert classifier.classify("api", ["schema.sql"]) == Specialization.DATABASE

        scores = classifier.score("api", ["schema.sql"])
        assert scores[Specialization.BACKEND] == 1
        assert scores[Specialization.DATABASE] == 3

    def test_globs_ignored_for_descriptions(self, classifier: SpecializationClassifier) -> None:
        """Extension globs only score against file names."""
        scores = classifier.score("update *.sql handling")
        assert scores[Specialization.DATABASE] == 1  # only the "sql" keyword

    def test_keyword_match_is_case_insensitive(self, classifier: SpecializationClassifier) -> None:
        assert classifier.classify("Migrate to POSTGRES") == Specialization.DATABASE

    def test_no_match_is_general(self, classifier: SpecializationClassifier) -> None:
        assert classifier.classify("") == Specialization.GENERAL
        assert classifier.classify("zzz", []) == Specialization.GENERAL

    def test_general_never_scores(self, classifier: SpecializationClassifier) -> None:
        scores = classifier.score("react api sql docker", ["a.py", "b.css"])
        assert scores[Specialization.GENERAL] == 0

    def test_ties_go_to_declaration_order(self, classifier: SpecializationClassifier) -> None:
        """A .js file scores frontend and backend equally; frontend is declared first."""
        scores = classifier.score("", ["app.js"])
        assert scores[Specialization.FRONTEND] == scores[Specialization.BACKEND] == 2
        assert classifier.classify("", ["app.js"]) == Specialization.FRONTEND

    def test_deterministic(self, classifier: SpecializationClassifier) -> None:
        """Identical inputs give identical tags."""
        args = ("Add graphql endpoint and docker build", ["server.py", "Dockerfile"])
        assert classifier.classify(*args) == classifier.classify(*args)


class TestPatterns:
    """Test pattern table management."""

    def test_add_patterns_extends_copy(self) -> None:
        classifier = SpecializationClassifier()

        classifier.add_patterns("devops", ["argo", "argo"])

        assert classifier.patterns("devops").count("argo") == 1
        assert "argo" not in DEFAULT_PATTERNS[Specialization.DEVOPS]
        assert classifier.classify("argo rollout") == Specialization.DEVOPS

    def test_repeated_pattern_scores_once(self) -> None:
        classifier = SpecializationClassifier({Specialization.DEVOPS: []})

        classifier.add_patterns(Specialization.DEVOPS, ["argo", "argo", "argo"])

        assert classifier.score("argo")[Specialization.DEVOPS] == 1

    def test_custom_table(self) -> None:
        classifier = SpecializationClassifier({Specialization.DATABASE: ["ledger"]})

        assert classifier.classify("ledger fix") == Specialization.DATABASE
        assert classifier.patterns(Specialization.FRONTEND) == []

    def test_is_extension_glob(self) -> None:
        assert is_extension_glob("*.sql")
        assert not is_extension_glob("*.")
        assert not is_extension_glob("Dockerfile")


class TestFileExtraction:
    """Test the default regex extractor."""

    def test_extracts_file_like_tokens(self) -> None:
        item = WorkItem.create("t", "Update Header.tsx and docker-compose.yml, not v1.2")

        files = RegexFileExtractor().extract_files(item)

        assert files == ["header.tsx", "docker-compose.yml"]

    def test_classify_item_uses_extracted_files(self) -> None:
        item = WorkItem.create("t", "Tweak schema.sql")

        assert SpecializationClassifier().classify_item(item) == Specialization.DATABASE

    def test_custom_extractor(self) -> None:
        """Any object with extract_files() can replace the regex."""

        class FixedExtractor:
            def extract_files(self, item: WorkItem) -> list[str]:
                return ["main.tf", "deploy.yaml"]

        item = WorkItem.create("t", "misc")

        result = SpecializationClassifier().classify_item(item, FixedExtractor())

        assert result == Specialization.DEVOPS
