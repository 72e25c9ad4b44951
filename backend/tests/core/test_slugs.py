"""Slug tests — slugify normalization and numeric de-duplication."""

from ideabox.core.slugs import slugify, next_available_slug


def test_slugify_lowercases_and_dashes_spaces():
    assert slugify("Dark Mode Support") == "dark-mode-support"


def test_slugify_collapses_punctuation_runs():
    assert slugify("Export -- to CSV!!  (please)") == "export-to-csv-please"


def test_slugify_strips_accents():
    assert slugify("Café crème") == "cafe-creme"


def test_slugify_falls_back_when_nothing_usable():
    assert slugify("!!!") == "post"
    assert slugify("") == "post"


def test_next_available_slug_returns_base_when_free():
    assert next_available_slug("dark-mode", {"light-mode"}) == "dark-mode"


def test_next_available_slug_appends_first_free_suffix():
    taken = {"dark-mode", "dark-mode-1", "dark-mode-3"}
    assert next_available_slug("dark-mode", taken) == "dark-mode-2"


def test_next_available_slug_accepts_list():
    assert next_available_slug("a", ["a"]) == "a-1"
