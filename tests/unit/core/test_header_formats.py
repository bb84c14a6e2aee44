"""Unit tests for core/headers/formats.py and core/utils/numerals.py"""

import pytest

from legalmd.core.headers.formats import (
    DEFAULT_FORMATS,
    HeaderFormatConfig,
    _level_list,
    infer_formats,
    render_label,
)
from legalmd.core.utils.numerals import alpha, roman


@pytest.mark.parametrize("num,upper,lower", [(1, "I", "i"), (4, "IV", "iv"), (9, "IX", "ix"), (14, "XIV", "xiv"), (1990, "MCMXC", "mcmxc")])
def test_roman(num, upper, lower):
    assert roman(num) == upper
    assert roman(num, lowercase=True) == lower


@pytest.mark.parametrize("num,label", [(1, "a"), (26, "z"), (27, "aa"), (52, "az")])
def test_alpha(num, label):
    assert alpha(num) == label
    assert alpha(num, uppercase=True) == label.upper()


def _counters(*values):
    return list(values) + [0] * (9 - len(values))


@pytest.mark.parametrize("template,counters,level,expected", [
    ("Article %n.",  _counters(3),       1, "Article 3."),
    ("%s",           _counters(2, 1),    2, "2.1"),
    ("%s",           _counters(1, 0, 4), 3, "1.4"),
    ("(%a)",         _counters(1, 2),    2, "(b)"),
    ("(%A)",         _counters(1, 3),    2, "(C)"),
    ("%c)",          _counters(1, 1),    2, "a)"),
    ("(%r)",         _counters(4),       1, "(iv)"),
    ("%R.",          _counters(4),       1, "IV."),
    ("%02n",         _counters(7),       1, "07"),
    ("%n.%t",        _counters(1),       1, "1.\t"),
    ("Plain",        _counters(1),       1, "Plain"),
])
def test_render_label(template, counters, level, expected):
    assert render_label(template, counters, level) == expected


def test_render_label_custom_joiner():
    assert render_label("%s", _counters(1, 2, 3), 3, joiner="-") == "1-2-3"


def test_infer_formats_defaults():
    assert infer_formats({}) == list(DEFAULT_FORMATS)
    assert infer_formats({})[2] == "%n."


def test_infer_formats_hierarchical_inheritance():
    formats = infer_formats({1: "%s.", 3: "(%a)"})
    assert formats[:4] == ["%s.", "%s.", "(%a)", DEFAULT_FORMATS[3]]


def test_infer_formats_flat_does_not_inherit():
    formats = infer_formats({1: "Chapter %n"})
    assert formats[1] == DEFAULT_FORMATS[1]


@pytest.mark.parametrize("raw,expected", [
    ("2", {2}),
    ("1, 3", {1, 3}),
    ("l2 l4", {2, 4}),
    ("ll lll", {2, 3}),
    ([1, "2"], {1, 2}),
    ("12 x", set()),
    (None, set()),
])
def test_level_list(raw, expected):
    assert _level_list(raw, "l") == expected


def test_config_from_metadata_key_aliases():
    config = HeaderFormatConfig.from_metadata({"level-1": "Part %R", "level_two": "Sec %n", "level3": "(%a)"})
    assert config.template(1) == "Part %R"
    assert config.template(2) == "Sec %n"
    assert config.template(3) == "(%a)"


def test_indentation():
    config = HeaderFormatConfig.from_metadata({"no-indent": "3"})
    assert [config.indent(level) for level in (1, 2, 3, 4)] == [0, 3, 0, 9]
    config = HeaderFormatConfig.from_metadata({"level-indent": 1})
    assert config.indent(3) == 4
    config = HeaderFormatConfig.from_metadata({}, indent_off=True)
    assert config.indent(5) == 0


def test_bad_level_indent_falls_back():
    config = HeaderFormatConfig.from_metadata({"level-indent": "wide"})
    assert config.level_indent == 1.5
