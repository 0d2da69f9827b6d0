"""Department normalizer and alias matching"""
from itertools import combinations

import pytest

from portal.domain import departments
from portal.repositories.directory_repo import DirectoryRepository
from scripts.normalize_departments import normalize_employee_departments

from .conftest import DESIGNER_1, DEVELOPER_1, QA_MANAGER


class TestNormalize:

    @pytest.mark.parametrize("label,expected", [
        ("Quality Assurance", "testing"),
        ("QA/Testing", "testing"),
        ("R & D", "research"),
        ("Software Engineering", "development"),
        ("UI/UX", "design"),
    ])
    def test_known_spellings_map_to_canonical_key(self, label, expected):
        assert departments.normalize(label) == expected

    def test_case_and_punctuation_are_ignored(self):
        assert departments.normalize("  DEV ") == departments.normalize("dev")
        assert departments.normalize("R and D") == departments.normalize("r&d") == "research"

    def test_unknown_label_normalizes_to_itself(self):
        assert departments.normalize("Finance & Ops") == "financeops"

    def test_blank_label(self):
        assert departments.normalize(None) == ""
        assert departments.expand_aliases("  ") == frozenset()


class TestMatches:

    @pytest.mark.parametrize("display,spellings", departments.ALIAS_CLASSES)
    def test_alias_classes_are_symmetric(self, display, spellings):
        for a, b in combinations(spellings + (display,), 2):
            assert departments.matches(a, b)
            assert departments.matches(b, a)

    def test_no_match_across_classes(self):
        for (_, first), (_, second) in combinations(departments.ALIAS_CLASSES, 2):
            for a in first:
                for c in second:
                    assert not departments.matches(a, c)

    def test_unknown_labels_match_only_literally(self):
        assert departments.matches("Finance", "finance ")
        assert not departments.matches("Finance", "Development")

    def test_blank_never_matches(self):
        assert not departments.matches("", "")
        assert not departments.matches(None, "Design")

    def test_matches_any(self):
        assert departments.matches_any("QA", ["Design", "Testing"])
        assert not departments.matches_any("QA", [])


def test_display_label():
    assert departments.display_label("qa/testing") == "Testing"
    assert departments.display_label("r&d") == "Research"
    assert departments.display_label(" Finance ") == "Finance"


class TestNormalizeScript:

    def test_dry_run_reports_without_writing(self):
        assert normalize_employee_departments(dry_run=True) == 3
        assert DirectoryRepository().get_employee(DESIGNER_1).department == "UI/UX"

    def test_rewrites_aliases_to_display_labels(self):
        assert normalize_employee_departments() == 3

        repo = DirectoryRepository()
        assert repo.get_employee(DESIGNER_1).department == "Design"
        assert repo.get_employee(DEVELOPER_1).department == "Development"
        assert repo.get_employee(QA_MANAGER).department == "Testing"
        assert normalize_employee_departments() == 0
