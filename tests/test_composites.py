"""
Option, tuple, list, map and struct tests.
Run with: pytest tests/test_composites.py
"""
import sys
import os
import pytest
from textwrap import dedent

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from ronparse.cursor import StringInput
from ronparse.errors import ParseError
from ronparse.parser import Grammar, comma_separated, create_parser, number, one_of, string
from ronparse.values import (
    Boolean, Char, List, Map, Number, Option, String, Struct, Tuple, UnitStructCache,
)


def parse_value(source, grammar=None):
    cursor = StringInput(source)
    result = (grammar or Grammar(UnitStructCache()))(cursor)
    return result, cursor

# ==========================================
# 1. Ordered Choice
# ==========================================

def test_one_of_takes_first_success():
    parser = one_of(number, string)
    assert parser(StringInput('"x"')).value == String("x")
    assert parser(StringInput('12')).value == Number(12)

def test_one_of_rewinds_on_total_failure():
    cursor = StringInput("  @@")
    assert one_of(number, string)(cursor) is None
    assert cursor.rest() == "  @@"

def test_fatal_error_is_not_downgraded_to_backtrack():
    with pytest.raises(ParseError):
        one_of(string, number)(StringInput(r'"\x"'))

def test_failed_top_level_leaves_input_unchanged():
    result, cursor = parse_value("  ( 1, 2 ")
    assert result is None
    assert cursor.rest() == "  ( 1, 2 "

# ==========================================
# 2. Comma Separated Lists
# ==========================================

def test_comma_separated_empty():
    items = comma_separated('[', ']', number)
    assert items(StringInput("[ ]")).value == []

def test_comma_separated_trailing_comma_and_comments():
    items = comma_separated('[', ']', number)
    source = "[1, // one\n 2,\n]"
    assert items(StringInput(source)).value == [Number(1), Number(2)]

def test_comma_separated_separator_is_optional():
    items = comma_separated('(', ')', number)
    assert items(StringInput("(1 2)")).value == [Number(1), Number(2)]

@pytest.mark.parametrize("source", ["[1, 2", "[1,, 2]", "[,]", "1, 2]", "[1; 2]"])
def test_comma_separated_rejects(source):
    cursor = StringInput(source)
    assert comma_separated('[', ']', number)(cursor) is None
    assert cursor.rest() == source

# ==========================================
# 3. Options
# ==========================================

def test_none():
    result, cursor = parse_value("None")
    assert result.value == Option()
    assert not result.value.present
    assert cursor.rest() == ""

def test_some():
    result, _ = parse_value('Some("string")')
    assert result.value == Option(String("string"))
    assert result.value.present

def test_nested_some():
    result, _ = parse_value("Some( Some(1) )")
    assert result.value == Option(Option(Number(1)))

def test_option_keywords_fall_back_to_unit_structs():
    assert parse_value("Some")[0].value == Struct("Some")
    assert parse_value("Nonesuch")[0].value == Struct("Nonesuch")

# ==========================================
# 4. Tuples, Lists & Maps
# ==========================================

def test_tuple():
    result, cursor = parse_value('("abc", 1.23, true)')
    assert result.value == Tuple((String("abc"), Number(1.23), Boolean(True)))
    assert cursor.rest() == ""

def test_empty_parens_are_a_tuple():
    assert parse_value("()")[0].value == Tuple(())

def test_lists():
    assert parse_value('["abc", "def"]')[0].value == List((String("abc"), String("def")))
    assert parse_value("[]")[0].value == List(())

def test_list_of_mixed_values():
    result, _ = parse_value("[ 'c', None, [1], (2,) ]")
    assert result.value == List((
        Char("c"), Option(), List((Number(1),)), Tuple((Number(2),)),
    ))

def test_map():
    assert parse_value('{ "a": "b" }')[0].value == Map(((String("a"), String("b")),))

def test_map_keys_are_any_value_and_order_is_kept():
    result, _ = parse_value('{ 2: "two", (1, 1): "pair", 2: "again", }')
    assert result.value.entries == (
        (Number(2), String("two")),
        (Tuple((Number(1), Number(1))), String("pair")),
        (Number(2), String("again")),
    )

def test_map_requires_colon():
    result, cursor = parse_value('{ "a" "b" }')
    assert result is None
    assert cursor.rest() == '{ "a" "b" }'

# ==========================================
# 5. Structs
# ==========================================

def test_untyped_nested_struct():
    result, _ = parse_value('( foo: 1.0, bar: ( baz: "x" ) )')
    assert result.value == Struct(None, (
        ("foo", Number(1.0)),
        ("bar", Struct(None, (("baz", String("x")),))),
    ))

def test_typed_struct():
    source = dedent("""
    Point(
        x: 1,   // horizontal
        y: -2,
    )
    """)
    result, _ = parse_value(source)
    assert result.value == Struct("Point", (("x", Number(1)), ("y", Number(-2))))
    assert result.value["y"] == Number(-2)

def test_duplicate_fields_are_kept_in_order():
    result, _ = parse_value("(a: 1, a: 2)")
    assert result.value.fields == (("a", Number(1)), ("a", Number(2)))
    assert result.value["a"] == Number(2)
    assert result.value.to_python() == {"a": 2.0}

def test_typed_struct_with_whitespace_before_paren():
    assert parse_value("Coin (v: 1)")[0].value == Struct("Coin", (("v", Number(1)),))

def test_unit_struct_is_interned():
    grammar = Grammar(UnitStructCache())
    first = parse_value("Coin", grammar)[0].value
    second = parse_value("[Coin]", grammar)[0].value.items[0]
    assert first is second
    assert first.is_unit

def test_unit_struct_leaves_following_whitespace():
    result, cursor = parse_value("Coin  ,")
    assert result.value == Struct("Coin")
    assert cursor.rest() == "  ,"

def test_struct_with_fields_is_not_the_unit_instance():
    grammar = Grammar(UnitStructCache())
    unit = parse_value("Coin", grammar)[0].value
    full = parse_value("Coin(foo: 1)", grammar)[0].value
    empty = parse_value("Coin()", grammar)[0].value
    assert full is not unit
    assert empty is not unit
    assert empty == unit

def test_interning_can_be_disabled():
    grammar = Grammar(None)
    first = parse_value("Coin", grammar)[0].value
    second = parse_value("Coin", grammar)[0].value
    assert first == second
    assert first is not second

def test_field_names_never_reach_the_cache():
    cache = UnitStructCache()
    result = parse_value("(alpha: 1, beta: (gamma: 2))", Grammar(cache))[0]
    assert result.value["beta"]["gamma"] == Number(2)
    assert len(cache) == 0

def test_only_surviving_unit_structs_are_cached():
    cache = UnitStructCache()
    result = parse_value("(coin: Coin, list: [Gem, Some(Coin)])", Grammar(cache))[0]
    assert "Coin" in cache
    assert "Gem" in cache
    assert len(cache) == 2
    assert result.value["coin"] is cache.get("Coin")
    assert result.value["list"].items[1].value is cache.get("Coin")

def test_default_parser_shares_process_cache():
    parser = create_parser()
    first = parser(StringInput("Shared")).value
    second = create_parser()(StringInput("Shared")).value
    assert first is second

@pytest.mark.parametrize("source", ["(a: )", "(a; 1)", "Point(1, 2)", "(: 1)", "42abc"])
def test_malformed_structs(source):
    result, cursor = parse_value(source)
    assert result is None
    assert cursor.rest() == source

def test_keywords_and_numbers_are_not_type_names():
    assert parse_value("true")[0].value == Boolean(True)
    assert parse_value("7")[0].value == Number(7)
    assert parse_value('r"x"')[0].value == String("x")

def test_to_python():
    result, _ = parse_value('Config(name: "demo", ports: [80, 0x1BB], debug: Some(true), extra: None)')
    assert result.value.to_python() == {
        "name": "demo", "ports": [80.0, 443.0], "debug": True, "extra": None,
    }
    assert parse_value("{[1]: 2}")[0].value.to_python() == [([1.0], 2.0)]
