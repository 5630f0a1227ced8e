"""Restrict derivation and the datapoint wire format."""
import pytest
from pydantic import TypeAdapter, ValidationError

from catalog_index.pipeline.restricts import RestrictField, derive_restricts
from catalog_index.vectorstore.models import CategoricalRestrict, Datapoint, NumericRestrict, Restrict


def test_all_fields_map_to_their_variant() -> None:
    restricts = derive_restricts({"id": "p1", "categoryId": 7, "brand": "acme", "price": "12.5", "rating": 4})
    assert restricts == [
        CategoricalRestrict(namespace="category_id", allow=["7"]),
        CategoricalRestrict(namespace="brand", allow=["acme"]),
        NumericRestrict(namespace="price", value_double=12.5),
        NumericRestrict(namespace="rating", value_double=4.0),
    ]


def test_absent_and_null_fields_are_skipped() -> None:
    assert derive_restricts({"id": "p1", "brand": None}) == []
    assert derive_restricts({"id": "p1", "color": "red"}) == []


def test_non_numeric_values_raise() -> None:
    with pytest.raises(ValueError):
        derive_restricts({"price": "n/a"})
    with pytest.raises(TypeError):
        derive_restricts({"rating": True})


def test_field_order_is_fixed() -> None:
    assert [f.value for f in RestrictField] == ["categoryId", "brand", "price", "rating"]


def test_restrict_union_is_discriminated() -> None:
    adapter = TypeAdapter(Restrict)
    assert isinstance(adapter.validate_python({"kind": "numeric", "namespace": "price", "value_double": 1}), NumericRestrict)
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "range", "namespace": "price"})


def test_datapoint_line_omits_empty_restricts() -> None:
    dp = Datapoint(id="p1", embedding=[0.5, 1.0])
    assert dp.to_json_line() == '{"id":"p1","embedding":[0.5,1.0]}'
    assert Datapoint.from_json_line(dp.to_json_line()) == dp


def test_datapoint_line_parses_both_restrict_arrays() -> None:
    line = (
        '{"id":"p2","embedding":[1.0],"restricts":[{"namespace":"brand","allow":["acme"]}],'
        '"numeric_restricts":[{"namespace":"price","value_double":3.0}]}'
    )
    dp = Datapoint.from_json_line(line)
    assert dp.categorical == [CategoricalRestrict(namespace="brand", allow=["acme"])]
    assert dp.numeric == [NumericRestrict(namespace="price", value_double=3.0)]
    assert dp.to_json_line() == line


def test_datapoint_requires_id_and_embedding() -> None:
    with pytest.raises(ValidationError):
        Datapoint(id="", embedding=[1.0])
    with pytest.raises(ValidationError):
        Datapoint(id="p1", embedding=[])
