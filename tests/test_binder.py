import pytest

from algobind.algobind_binder import Binder, BoundMember, BindingTable, AlgorithmNamespace
from algobind.algobind_datatypes import ArgumentCollisionError, Signature
from algobind.algobind_registry import AlgorithmRegistry
from algobind.algobind_sources import StaticCatalogue


def arg(name, type_="Object", **extra):
    return {"name": name, "type": type_, **extra}


def entry(returns, *args, description=""):
    return {"returns": returns, "args": list(args), "description": description}


CATALOGUE = {
    "Image.constant": entry("Image", arg("value", "Object", required=True)),
    "Image.add": entry("Image", arg("input", "Image"), arg("other", "Image"), description="Adds."),
    "Image.select": entry("Image", arg("input", "Element"), arg("bands", "List<String>")),
    "Image.load": entry("Image", arg("id", "String")),
    "Image.random": entry("Image"),
    "Image.map": entry("Image", arg("input", "Image"), arg("fn", "Function")),
    "Image.Segmentation.snic": entry("Image", arg("image", "Image")),
    "Collection.map": entry("Collection", arg("collection", "Collection"), arg("fn", "Function")),
    "Terrain.slope": entry("Image", arg("input", "Image")),
    "Foo.pair": entry("Object", arg("a", "Number"), arg("b", "Number")),
}


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, func, named_args):
        self.calls.append((func.name, named_args))
        return (func.name, named_args)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def registry(recorder):
    return AlgorithmRegistry(StaticCatalogue(CATALOGUE), invocation_factory=recorder)


@pytest.fixture
def binder(registry):
    return Binder(registry)


@pytest.fixture
def Image():
    class Image:
        pass
    return Image


def test_bind_populates_and_marks_only_exact_two_part_names(binder, registry, Image):
    table = binder.bind(Image, "Image", "Image")
    assert registry.is_populated
    assert set(table) == {"constant", "add", "select", "load", "random", "map"}
    assert not hasattr(Image, "snic")
    assert not hasattr(Image, "Segmentation")
    assert registry.is_bound("Image.add")
    assert not registry.is_bound("Image.Segmentation.snic")
    assert "Image.Segmentation.snic" in registry.unbound_functions()


def test_classification(binder, Image):
    table = binder.bind(Image, "Image", "Image")
    assert table["add"].is_instance
    assert table["select"].is_instance        # Image is accepted where Element is declared
    assert table["map"].is_instance
    assert not table["constant"].is_instance  # Object never makes an instance member
    assert not table["load"].is_instance      # String does not accept Image
    assert not table["random"].is_instance    # no arguments
    assert {m.member_name for m in table.instance_members()} == {"add", "select", "map"}
    assert {m.member_name for m in table.static_members()} == {"constant", "load", "random"}


def test_classify_object_first_arg_is_always_static(binder):
    from algobind.algobind_datatypes import ArgSpec

    class Everything:
        def is_subtype(self, declared, candidate):
            return True

    b = Binder(binder.registry, type_matcher=Everything())
    assert not b.classify(Signature("X.f", "X", [ArgSpec("v", "Object")]), "X")
    assert b.classify(Signature("X.f", "X", [ArgSpec("v", "Number")]), "X")


def test_end_to_end_static_constant(binder, recorder, Image):
    binder.bind(Image, "Image", "Image")
    result = Image.constant(5)
    assert result == ("Image.constant", {"value": 5})
    assert recorder.calls == [("Image.constant", {"value": 5})]


def test_instance_member_binds_receiver(binder, recorder, Image):
    binder.bind(Image, "Image", "Image")
    img = Image()
    other = Image()
    img.add(other)
    assert recorder.calls[-1] == ("Image.add", {"input": img, "other": other})
    img.add({"other": other})
    assert recorder.calls[-1] == ("Image.add", {"input": img, "other": other})
    img.add(other=other)
    assert recorder.calls[-1] == ("Image.add", {"input": img, "other": other})
    # Through the class the receiver is the first positional argument
    Image.add(img, other)
    assert recorder.calls[-1] == ("Image.add", {"input": img, "other": other})


def test_named_record_cannot_redeclare_receiver(binder, Image):
    binder.bind(Image, "Image", "Image")
    with pytest.raises(ArgumentCollisionError):
        Image().add({"input": 1})


def test_static_named_and_positional_are_equivalent(binder, recorder):
    class Foo:
        pass

    binder.bind(Foo, "Foo", "Foo")
    assert Foo.pair(1, 2) == Foo.pair({"a": 1, "b": 2})
    assert recorder.calls[0][1] == recorder.calls[1][1] == {"a": 1, "b": 2}
    # Static members ignore the instance they are reached through
    Foo().pair(3, 4)
    assert recorder.calls[-1][1] == {"a": 3, "b": 4}


def test_existing_members_are_never_overwritten(binder, Image):
    def select(self):
        return "hand-written"

    Image.select = select
    binder.bind(Image, "Image", "Image")
    assert Image().select() == "hand-written"
    assert isinstance(Image.__dict__["select_"], BoundMember)
    assert Image.__dict__["select_"].catalogue_name == "Image.select"


def test_two_entries_generating_same_name_keep_both(binder, Image):
    binder.bind(Image, "Image", "Image")
    binder.bind(Image, "Collection", "Image")
    assert Image.__dict__["map"].catalogue_name == "Image.map"
    assert Image.__dict__["map_"].catalogue_name == "Collection.map"


def test_collision_suffixing_repeats_until_free(binder, Image):
    Image.map = lambda self: None
    Image.map_ = lambda self: None
    binder.bind(Image, "Image", "Image")
    assert Image.__dict__["map__"].catalogue_name == "Image.map"


def test_rebinding_same_entries_replaces_in_place(binder, Image):
    first = binder.bind(Image, "Image", "Image")
    second = binder.bind(Image, "Image", "Image")
    assert set(first) == set(second)
    assert not hasattr(Image, "add_")
    assert Image.__dict__["add"] is second["add"]


def test_prepend_prefixes_member_names(binder, Image):
    table = binder.bind(Image, "Image", "Image", prepend="ee_")
    assert "ee_add" in table
    assert hasattr(Image, "ee_constant")


def test_plan_does_not_touch_target_or_bound_set(binder, registry, Image):
    table = binder.plan("Image", "Image", target=Image)
    assert isinstance(table, BindingTable)
    assert "add" in table
    assert not hasattr(Image, "add")
    assert not registry.is_bound("Image.add")
    table.install(Image)
    assert Image.__dict__["add"] is table["add"]


def test_bound_member_carries_signature_and_call_form(binder, Image):
    binder.bind(Image, "Image", "Image")
    member = Image.__dict__["add"]
    assert isinstance(member.signature, Signature)
    assert member.signature.name == "Image.add"
    text = str(Image.add)
    assert text.splitlines()[0] == "add(other)"
    assert "this:input (Image)" in text
    assert str(Image.constant).splitlines()[0] == "constant(value)"
    assert Image.add.__doc__ == text


def test_unbind_removes_every_generated_member(binder, Image):
    def keep(self):
        return 1

    Image.keep = keep
    binder.bind(Image, "Image", "Image")
    binder.bind(Image, "Collection", "Image")
    removed = binder.unbind(Image)
    assert set(removed) == {"constant", "add", "select", "load", "random", "map", "map_"}
    assert not hasattr(Image, "add")
    assert not hasattr(Image, "map_")
    assert Image.keep is keep


def test_members_survive_registry_reset(binder, registry, recorder, Image):
    binder.bind(Image, "Image", "Image")
    registry.reset()
    Image.constant(1)
    assert recorder.calls[-1] == ("Image.constant", {"value": 1})
    assert not registry.is_populated


def test_bind_unbound_builds_nested_namespace(binder, registry, recorder, Image):
    binder.bind(Image, "Image", "Image")
    ns = binder.bind_unbound()
    assert isinstance(ns, AlgorithmNamespace)
    assert isinstance(ns.Terrain, AlgorithmNamespace)
    ns.Terrain.slope(1)
    assert recorder.calls[-1] == ("Terrain.slope", {"input": 1})
    ns.Image.Segmentation.snic(2)
    assert recorder.calls[-1] == ("Image.Segmentation.snic", {"image": 2})
    assert not hasattr(ns.Image, "add")
    assert registry.unbound_functions() == {}


def test_binder_uses_default_registry_when_none_given(registry, Image):
    from algobind.algobind_registry import default_registry, set_default_registry

    previous = default_registry()
    set_default_registry(registry)
    try:
        Binder().bind(Image, "Image", "Image")
        assert hasattr(Image, "add")
    finally:
        set_default_registry(previous)
