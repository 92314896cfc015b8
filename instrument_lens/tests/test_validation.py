import pytest

from instrument_lens.analysis_service.errors import ValidationError
from instrument_lens.analysis_service.validation import parse_images


def test_parse_content_objects():
    images = parse_images({"images": [
        {"content": "data:image/png;base64,AAA", "filename": "a.png"},
        {"dataUrl": "data:image/png;base64,BBB"},
        {"data_url": "data:image/png;base64,CCC", "filename": "c.png"},
    ]})

    assert [i.content for i in images] == [
        "data:image/png;base64,AAA",
        "data:image/png;base64,BBB",
        "data:image/png;base64,CCC",
    ]
    assert [i.filename for i in images] == ["a.png", "image-2", "c.png"]


def test_parse_bare_strings():
    images = parse_images({"images": ["https://example.com/guitar.jpg"]})

    assert images[0].content == "https://example.com/guitar.jpg"
    assert images[0].filename == "image-1"


def test_more_than_four_images_pass_through():
    images = parse_images({"images": ["a", "b", "c", "d", "e"]})
    assert len(images) == 5


@pytest.mark.parametrize("body", [
    None,
    {},
    {"images": []},
    {"images": "data:image/png;base64,AAA"},
    {"images": {"content": "x"}},
    [],
])
def test_rejects_missing_or_malformed_images(body):
    with pytest.raises(ValidationError) as exc:
        parse_images(body)
    assert exc.value.status == 400
    assert '"images"' in exc.value.message


@pytest.mark.parametrize("item", [{}, {"filename": "a.png"}, "", 42, None, {"content": ""}])
def test_rejects_entry_without_content(item):
    with pytest.raises(ValidationError) as exc:
        parse_images({"images": [{"content": "ok"}, item]})
    assert "entry 2" in exc.value.message


def test_repr_hides_image_data():
    image = parse_images({"images": [{"content": "data:image/png;base64,SECRET", "filename": "a.png"}]})[0]
    assert "SECRET" not in repr(image)
