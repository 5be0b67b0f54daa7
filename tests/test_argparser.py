import pytest

from tbsim.argparser import (
    ArgumentError,
    HasArg,
    Option,
    ParsedArgument,
    option_name,
    parse_arguments,
    parse_single,
)

OPTIONS = [
    Option("a", "append", HasArg.NO),
    Option("b", "block", HasArg.YES),
    Option("c", "casual", HasArg.MAYBE),
    Option("h", "help", HasArg.NO),
    Option("H", "hidden", HasArg.NO),
    Option("o", None, HasArg.YES),
    Option("q", "quiet", HasArg.NO),
    Option("u", "uncaught", HasArg.NO),
    Option("v", "verbose", HasArg.NO),
    Option("V", "version", HasArg.NO),
    Option(256, "orphan", HasArg.NO),
]


def parse(*args, in_order=False):
    return parse_arguments(["prog", *args], OPTIONS, in_order)


def test_no_arguments_gives_empty_result():
    assert parse() == []
    assert parse_arguments([], OPTIONS) == []
    assert parse_arguments(None, OPTIONS) == []


def test_option_code_from_letter():
    assert Option("a").code == ord("a")


def test_zero_code_rejected():
    with pytest.raises(ValueError):
        Option(0, "zero")


def test_options_before_non_options_by_default():
    result = parse("file1", "-a", "file2", "--block", "x")
    assert result == [
        ParsedArgument(ord("a"), ""),
        ParsedArgument(ord("b"), "x"),
        ParsedArgument(0, "file1"),
        ParsedArgument(0, "file2"),
    ]


def test_in_order_keeps_sequence():
    result = parse("file1", "-a", "file2", in_order=True)
    assert [r.code for r in result] == [0, ord("a"), 0]
    assert [r.argument for r in result] == ["file1", "", "file2"]


def test_double_dash_ends_options():
    result = parse("-a", "--", "-b", "--append")
    assert result == [
        ParsedArgument(ord("a"), ""),
        ParsedArgument(0, "-b"),
        ParsedArgument(0, "--append"),
    ]


def test_skipped_non_options_come_before_post_dash_arguments():
    result = parse("x", "--", "y")
    assert [r.argument for r in result] == ["x", "y"]
    assert not any(r.is_option for r in result)


def test_single_dash_is_non_option():
    assert parse("-") == [ParsedArgument(0, "-")]


def test_combined_short_options():
    result = parse("-aq")
    assert [r.code for r in result] == [ord("a"), ord("q")]


def test_short_option_attached_argument():
    assert parse("-bvalue") == [ParsedArgument(ord("b"), "value")]


def test_short_option_separate_argument():
    assert parse("-b", "value", "rest") == [
        ParsedArgument(ord("b"), "value"),
        ParsedArgument(0, "rest"),
    ]


def test_short_option_combined_then_argument():
    assert parse("-ab", "value") == [
        ParsedArgument(ord("a"), ""),
        ParsedArgument(ord("b"), "value"),
    ]


def test_maybe_short_option_without_argument_does_not_consume_next():
    assert parse("-c", "next") == [
        ParsedArgument(ord("c"), ""),
        ParsedArgument(0, "next"),
    ]


def test_maybe_short_option_with_attached_argument():
    assert parse("-cfoo") == [ParsedArgument(ord("c"), "foo")]


def test_short_only_option():
    assert parse("-o", "out.txt") == [ParsedArgument(ord("o"), "out.txt")]


def test_long_option_with_equals():
    assert parse("--block=abc") == [ParsedArgument(ord("b"), "abc")]


def test_long_maybe_option_with_empty_equals():
    assert parse("--casual=") == [ParsedArgument(ord("c"), "")]


def test_long_maybe_option_does_not_consume_next():
    assert parse("--casual", "x") == [
        ParsedArgument(ord("c"), ""),
        ParsedArgument(0, "x"),
    ]


def test_long_only_option():
    assert parse("--orphan") == [ParsedArgument(256, "")]


def test_long_option_abbreviation():
    assert parse("--verb") == [ParsedArgument(ord("v"), "")]
    assert parse("--app") == [ParsedArgument(ord("a"), "")]


def test_long_option_exact_match_wins():
    options = [Option("x", "format"), Option("y", "formats")]
    result = parse_arguments(["prog", "--format"], options)
    assert result == [ParsedArgument(ord("x"), "")]


def test_same_code_abbreviation_is_not_ambiguous():
    options = [Option("x", "colour"), Option("x", "color")]
    result = parse_arguments(["prog", "--col"], options)
    assert result == [ParsedArgument(ord("x"), "")]


def test_ambiguous_long_option():
    with pytest.raises(ArgumentError, match="option '--ver' is ambiguous"):
        parse("--ver")


def test_unrecognized_long_option():
    with pytest.raises(ArgumentError, match="unrecognized option '--nope'"):
        parse("--nope")


def test_long_option_does_not_allow_argument():
    with pytest.raises(ArgumentError, match="option '--append' doesn't allow an argument"):
        parse("--append=x")


def test_long_option_requires_argument_with_equals():
    with pytest.raises(ArgumentError, match="option '--block' requires an argument"):
        parse("--block=")


def test_long_option_requires_argument_at_end():
    with pytest.raises(ArgumentError, match="option '--block' requires an argument"):
        parse("--block")


def test_long_option_empty_next_argument_is_missing():
    with pytest.raises(ArgumentError, match="requires an argument"):
        parse("--block", "")


def test_invalid_short_option():
    with pytest.raises(ArgumentError, match="invalid option -- 'z'"):
        parse("-z")


def test_short_option_requires_argument():
    with pytest.raises(ArgumentError, match="option requires an argument -- 'b'"):
        parse("-b")


def test_long_only_code_not_usable_as_short():
    with pytest.raises(ArgumentError):
        parse("-" + chr(256))


def test_error_raised_after_valid_options():
    with pytest.raises(ArgumentError):
        parse("-a", "file", "-z")


def test_argument_error_is_value_error():
    with pytest.raises(ValueError):
        parse("--nope")


def test_parse_single_non_option():
    assert parse_single("word", None, OPTIONS) == [ParsedArgument(0, "word")]


def test_parse_single_empty_and_double_dash():
    assert parse_single("", None, OPTIONS) == []
    assert parse_single(None, None, OPTIONS) == []
    assert parse_single("--", "x", OPTIONS) == []


def test_parse_single_uses_argument():
    assert parse_single("-b", "val", OPTIONS) == [ParsedArgument(ord("b"), "val")]
    assert parse_single("--block", "val", OPTIONS) == [ParsedArgument(ord("b"), "val")]


def test_parse_single_error():
    with pytest.raises(ArgumentError):
        parse_single("--block", None, OPTIONS)


def test_option_name_long():
    assert option_name(ord("b"), OPTIONS) == "block"
    assert option_name(256, OPTIONS) == "orphan"


def test_option_name_short_only_and_unknown():
    assert option_name(ord("o"), OPTIONS) == "o"
    assert option_name(ord("z"), OPTIONS) == "z"
    assert option_name(0, OPTIONS) == "?"
    assert option_name(300, OPTIONS) == "?"


def test_every_option_record_names_a_known_option():
    result = parse("-aq", "--block=x", "file", "--orphan", "-cval")
    known = {o.code for o in OPTIONS}
    assert all(r.code in known for r in result if r.is_option)
    assert [r.argument for r in result if not r.is_option] == ["file"]