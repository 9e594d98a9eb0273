import math

import pytest
from hypothesis import given, strategies as st

from nekort.runtime import (
    HashTable,
    apply,
    closure,
    fasthash,
    idiv,
    is_infinite,
    is_nan,
    is_true,
    nargs,
    to_float,
    to_int,
    type_of,
    varargs,
)
from nekort.values import (
    VAR_ARGS,
    Abstract,
    Kind,
    NekoError,
    NekoFunction,
    NekoObject,
    current_this,
    field_hash,
)


def _fn(impl, n):
    return NekoFunction(impl, n, "test")


# ---------------------------------------------------------------- hashing


def test_fasthash_empty_is_zero():
    assert fasthash("") == 0


def test_fasthash_single_char():
    assert fasthash("a") == ord("a")


def test_fasthash_matches_field_hash():
    assert fasthash("someFieldName") == field_hash("someFieldName")


def test_fasthash_stops_at_nul():
    assert fasthash(b"ab\0cd") == fasthash(b"ab")


def test_fasthash_rejects_non_string():
    with pytest.raises(NekoError):
        fasthash(5)


# ------------------------------------------------------------- to_int


@pytest.mark.parametrize("text", ["42", b"42", "  42", "+42", "42abc"])
def test_to_int_decimal(text):
    assert to_int(text) == 42


def test_to_int_negative_decimal():
    assert to_int("  -17") == -17


def test_to_int_hex():
    assert to_int("0x1F") == int("1F", 16)
    assert to_int("-0x10") == -int("10", 16)
    assert to_int("0XffG") == int("ff", 16)


def test_to_int_not_a_number():
    assert to_int("abc") is None
    assert to_int("") is None


def test_to_int_passes_ints_through():
    assert to_int(5) == 5


@pytest.mark.parametrize("value", [None, True, [1], NekoObject()])
def test_to_int_other_types_give_none(value):
    assert to_int(value) is None


def test_to_int_floats_truncate():
    assert to_int(3.7) == 3
    assert to_int(-3.7) == -3


def test_to_int_float_wraps_modulo_2_32():
    assert to_int(2.0 ** 32 + 5) == 5


# ----------------------------------------------------------- to_float


def test_to_float_strings():
    assert to_float("1.5") == 1.5
    assert to_float(" 2e3x") == 2e3
    assert to_float(b".25") == 0.25


def test_to_float_special_strings():
    assert to_float("inf") == math.inf
    assert math.isnan(to_float("nan"))


def test_to_float_hex_string():
    assert to_float("0x1p3") == float.fromhex("0x1p3")


def test_to_float_invalid():
    assert to_float("x") is None
    assert to_float(None) is None
    assert to_float(True) is None


def test_to_float_numbers():
    assert to_float(3) == 3.0
    assert to_float(2.5) == 2.5


# ------------------------------------------------------------- type_of


@pytest.mark.parametrize(
    "value, code",
    [
        (None, 0),
        (1, 1),
        (1.0, 2),
        (True, 3),
        (b"s", 4),
        (NekoObject(), 5),
        ([], 6),
        (NekoFunction(lambda: None, 0), 7),
        (Abstract(Kind("k")), 8),
    ],
)
def test_type_of_codes(value, code):
    assert type_of(value) == code


def test_type_of_unknown_raises():
    with pytest.raises(NekoError):
        type_of(object())


# ------------------------------------------------------------ truthiness


@pytest.mark.parametrize("value", [None, False, 0])
def test_is_true_false_values(value):
    assert is_true(value) is False


@pytest.mark.parametrize("value", [True, 1, 0.0, b"", [], NekoObject()])
def test_is_true_true_values(value):
    assert is_true(value) is True


def test_is_nan():
    assert is_nan(math.nan) is True
    assert is_nan(1.0) is False
    assert is_nan("nan") is False


def test_is_infinite():
    assert is_infinite(math.inf) is True
    assert is_infinite(-math.inf) is True
    assert is_infinite(math.nan) is False
    assert is_infinite(1) is False


# ---------------------------------------------------------------- idiv


@pytest.mark.parametrize("a, b", [(7, 2), (-7, 2), (7, -2), (-7, -2)])
def test_idiv_truncates(a, b):
    assert idiv(a, b) == math.trunc(a / b)


def test_idiv_by_zero():
    with pytest.raises(NekoError):
        idiv(1, 0)


# ----------------------------------------------------------- functions


def test_nargs():
    assert nargs(_fn(lambda a, b: a, 2)) == 2
    assert nargs(_fn(lambda *a: a, VAR_ARGS)) == VAR_ARGS
    with pytest.raises(NekoError):
        nargs(3)


def test_closure_binds_args_and_this():
    obj = NekoObject()
    seen = []

    def impl(a, b, c):
        seen.append(current_this())
        return a + b + c

    c = closure(_fn(impl, 3), obj, 1)
    assert c(2, 3) == 1 + 2 + 3
    assert seen == [obj]


def test_closure_wrong_count_gives_none():
    c = closure(_fn(lambda a, b: a + b, 2), None, 1)
    assert c(2, 3) is None


def test_closure_too_many_bound_args():
    with pytest.raises(NekoError, match="Invalid closure arguments number"):
        closure(_fn(lambda a: a, 1), None, 1, 2)


def test_closure_needs_function():
    with pytest.raises(NekoError):
        closure(5, None)


def test_apply_full_call():
    f = _fn(lambda a, b, c: [a, b, c], 3)
    assert apply(f, 1, 2, 3) == [1, 2, 3]


def test_apply_partial():
    f = _fn(lambda a, b, c: [a, b, c], 3)
    partial = apply(f, 1)
    assert nargs(partial) == 2
    assert partial(2, 3) == [1, 2, 3]


def test_apply_without_args_returns_function():
    f = _fn(lambda a: a, 1)
    assert apply(f) is f


def test_apply_errors():
    f = _fn(lambda a: a, 1)
    with pytest.raises(NekoError):
        apply(f, 1, 2)
    with pytest.raises(NekoError):
        apply(5, 1)


def test_varargs_collects_arguments():
    v = varargs(_fn(lambda arr: arr, 1))
    assert v(1, 2, 3) == [1, 2, 3]
    assert v() == []


def test_varargs_requires_one_argument_function():
    with pytest.raises(NekoError):
        varargs(_fn(lambda a, b: a, 2))


# ------------------------------------------------------------ hashtable


def test_hashtable_default_size():
    assert HashTable(0).size() == 7
    assert HashTable(-3).size() == 7
    assert HashTable(11).size() == 11


def test_hashtable_set_get_remove():
    h = HashTable()
    assert h.set(b"a", 1) is True
    assert h.set(b"a", 2) is False
    assert h.get(b"a") == 2
    assert h.mem(b"a") is True
    assert h.count() == 1
    assert h.remove(b"a") is True
    assert h.remove(b"a") is False
    assert h.get(b"a") is None
    assert h.count() == 0


def test_hashtable_add_masks_previous():
    h = HashTable()
    h.add(1, "old")
    h.add(1, "new")
    assert h.get(1) == "new"
    assert h.count() == 2
    h.remove(1)
    assert h.get(1) == "old"


def test_hashtable_grows_when_full():
    h = HashTable(7)
    for i in range(14):
        h.set(i, i)
    assert h.size() == 7
    h.set(14, 14)
    assert h.size() == 14
    assert all(h.get(i) == i for i in range(15))


def test_hashtable_resize_keeps_items():
    h = HashTable(3)
    for i in range(5):
        h.set(i, str(i))
    h.resize(50)
    assert h.size() == 50
    assert sorted(h.items()) == [(i, str(i)) for i in range(5)]


def test_hashtable_custom_cmp():
    h = HashTable()
    always = _fn(lambda a, b: 0, 2)
    never = _fn(lambda a, b: 1, 2)
    h.set(5, "x")
    assert h.get(5, never) is None
    assert h.mem(5, always) is True
    assert h.set(5, "y", always) is False
    assert h.get(5) == "y"


def test_hashtable_cmp_false_is_not_zero():
    h = HashTable()
    h.set(5, "x")
    assert h.get(5, _fn(lambda a, b: False, 2)) is None


def test_hashtable_invalid_cmp():
    h = HashTable()
    with pytest.raises(NekoError):
        h.get(1, _fn(lambda a: a, 1))
    with pytest.raises(NekoError):
        h.set(1, 2, "cmp")


def test_hashtable_items():
    h = HashTable()
    h.set(b"k", 1)
    h.set(2.5, 2)
    assert sorted(v for _, v in h.items()) == [1, 2]


@given(st.dictionaries(st.integers(-1000, 1000) | st.binary(max_size=8), st.integers()))
def test_hashtable_round_trip(mapping):
    h = HashTable()
    for key, value in mapping.items():
        h.set(key, value)
    assert h.count() == len(mapping)
    for key, value in mapping.items():
        assert h.get(key) == value