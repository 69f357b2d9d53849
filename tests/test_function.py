import pytest

from algobind.algobind_datatypes import (
    ArgSpec, Signature, InvalidArgumentsError, ArgumentCollisionError,
)
from algobind.algobind_function import FunctionHandle
from algobind.algobind_registry import AlgorithmRegistry


def recorder():
    calls = []

    def factory(func, named_args):
        calls.append((func.encode(), named_args))
        return ("node", func.encode(), named_args)

    return calls, factory


def test_construction_copies_signature_and_stamps_name():
    sig = Signature("wrong", "Image", [ArgSpec("x", "Number")], "doc")
    func = FunctionHandle("Image.abs", sig)
    assert func.get_signature().name == "Image.abs"
    assert sig.name == "wrong"
    sig.description = "changed later"
    sig.args.append(ArgSpec("y", "Number"))
    assert func.get_signature().description == "doc"
    assert func.get_signature().arg_names() == ["x"]


def test_encode_is_the_bare_name():
    func = FunctionHandle("Image.abs", Signature(None, "Image", []))
    assert func.encode() == "Image.abs"
    assert func.name == "Image.abs"


def test_lookup_form_returns_registered_handle():
    reg = AlgorithmRegistry({"Image.abs": {"returns": "Image", "args": [], "description": ""}})
    assert FunctionHandle.lookup("Image.abs", reg) is reg.lookup("Image.abs")


def test_apply_hands_record_to_factory_untouched():
    calls, factory = recorder()
    func = FunctionHandle("Image.abs", Signature(None, "Image", [ArgSpec("x", "Image")]), factory)
    result = func.apply({"anything": 1})
    assert result == ("node", "Image.abs", {"anything": 1})
    assert calls == [("Image.abs", {"anything": 1})]


def test_call_pairs_positional_values_in_declared_order():
    calls, factory = recorder()
    func = FunctionHandle("F.f", Signature(None, "Object", [ArgSpec("a"), ArgSpec("b"), ArgSpec("c")]), factory)
    func.call(1, 2)
    assert calls[-1] == ("F.f", {"a": 1, "b": 2})
    with pytest.raises(InvalidArgumentsError, match=r"Too many \(4\) arguments"):
        func.call(1, 2, 3, 4)
    assert len(calls) == 1


def test_call_accepts_a_named_record_like_bound_members():
    calls, factory = recorder()
    func = FunctionHandle("F.f", Signature(None, "Object", [ArgSpec("a"), ArgSpec("b")]), factory)
    func.call({"a": 1, "b": 2})
    func.call(a=1, b=2)
    assert calls == [("F.f", {"a": 1, "b": 2}), ("F.f", {"a": 1, "b": 2})]


def test_call_merges_positional_and_keyword():
    calls, factory = recorder()
    func = FunctionHandle("F.f", Signature(None, "Object", [ArgSpec("a"), ArgSpec("b")]), factory)
    func.call(1, b=2)
    assert calls[-1] == ("F.f", {"a": 1, "b": 2})
    with pytest.raises(ArgumentCollisionError):
        func.call(1, a=2)


def test_str_is_the_call_form():
    func = FunctionHandle("Image.abs", Signature(None, "Image", [ArgSpec("x", "Image")], "Absolute value."))
    assert str(func).splitlines()[0] == "Image.abs(x)"
    assert func.format_doc("abs", is_instance=True).splitlines()[0] == "abs()"
