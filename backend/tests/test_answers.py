import pytest

from answers import ImageSelection, PlainText, RawAnswer, parse_answer, reduce_answer, render_answer


def test_plain_string():
    assert parse_answer("Yes") == PlainText("Yes")
    assert render_answer("Yes") == "Yes"


def test_image_selection_without_custom_reason():
    value = {"image": "a", "reasons": ["x", "y"]}
    first = render_answer(value)
    assert first == "Image: a | Reasons: x, y"
    assert render_answer(value) == first


def test_image_selection_custom_reason_only_when_non_empty():
    assert render_answer({"image": "a", "reasons": [], "customReason": ""}) == "Image: a | Reasons: "
    assert render_answer({"image": "a", "reasons": ["x"], "customReason": "why"}) == \
        "Image: a | Reasons: x | Custom: why"


def test_image_selection_reasons_deduplicated_in_order():
    answer = parse_answer({"image": "b.png", "reasons": ["y", "x", "y"]})
    assert answer == ImageSelection(image="b.png", reasons=("y", "x"))


def test_image_selection_without_image():
    assert render_answer({"image": None, "reasons": ["x"]}) == "Image: null | Reasons: x"


def test_image_selection_with_non_string_reasons():
    assert render_answer({"image": "a", "reasons": [1, 2]}) == "Image: a | Reasons: 1, 2"
    assert render_answer({"image": "a", "reasons": [True, None, 2.5]}) == "Image: a | Reasons: true, , 2.5"


def test_image_selection_ignores_non_string_custom_reason():
    answer = parse_answer({"image": "a", "reasons": ["x"], "customReason": 42})
    assert answer == ImageSelection(image="a", reasons=("x",))
    assert reduce_answer(answer) == "Image: a | Reasons: x"


def test_other_shapes_serialize_as_json_in_stored_key_order():
    assert render_answer({"b": 1, "a": [True, None]}) == '{"b":1,"a":[true,null]}'
    assert render_answer({"image": "a", "reasons": "not-a-list"}) == '{"image":"a","reasons":"not-a-list"}'
    assert render_answer(3) == "3"
    assert render_answer(["Yes", "No"]) == '["Yes","No"]'
    assert isinstance(parse_answer(False), RawAnswer)


def test_unanswered_is_empty():
    assert render_answer(None) == ""


def test_unknown_variant_rejected():
    with pytest.raises(TypeError):
        reduce_answer(object())
