import pytest

from wastewise.errors import ClassificationError
from wastewise.schemas import WasteCategory
from wastewise.services.classification import CLASSIFICATION_PROMPT, GeminiClassifier, parse_classification

from conftest import FakeModel


def test_parses_documented_format():
    result = parse_classification("Category: Organic\nConfidence: 0.82\n---\n- a\n- b\n- c")

    assert result.classification == "Organic"
    assert result.confidence == 0.82
    assert result.recommendations == ["a", "b", "c"]
    assert result.category is WasteCategory.ORGANIC


def test_missing_category_is_unknown():
    result = parse_classification("Confidence: 0.5\n---\n- a")
    assert result.classification == "Unknown"
    assert result.category is None


@pytest.mark.parametrize("header", [
    "Category: Hazardous",
    "Category: Hazardous\nConfidence: high",
    "Category: Hazardous\nConfidence:",
])
def test_missing_or_garbled_confidence_is_zero(header):
    result = parse_classification(header + "\n---\n- a")
    assert result.classification == "Hazardous"
    assert result.confidence == 0


def test_confidence_reads_leading_number():
    result = parse_classification("Category: Recyclable\nConfidence: 0.9 (very sure)\n---\n")
    assert result.confidence == 0.9


def test_recommendation_lines_are_cleaned():
    text = "Category: Non-Recyclable\nConfidence: 0.7\n---\n\n-   first  \n\n- second\n   \nthird\n"
    result = parse_classification(text)
    assert result.classification == "Non-Recyclable"
    assert result.recommendations == ["first", "second", "third"]


def test_missing_separator_gives_no_recommendations():
    result = parse_classification("Category: Industrial\nConfidence: 0.4")
    assert result.classification == "Industrial"
    assert result.confidence == 0.4
    assert result.recommendations == []


def test_windows_line_endings():
    result = parse_classification("Category: Organic\r\nConfidence: 0.6\r\n---\r\n- a\r\n- b\r\n")
    assert result.classification == "Organic"
    assert result.recommendations == ["a", "b"]


def test_classifier_sends_prompt_and_inline_image():
    model = FakeModel(text="Category: Recyclable\nConfidence: 0.95\n---\n- Rinse\n- Flatten\n- Recycle")
    classifier = GeminiClassifier(model=model)

    result = classifier.classify(b"\x89PNG", "image/png")

    assert result.classification == "Recyclable"
    prompt, image = model.requests[0]
    assert prompt == CLASSIFICATION_PROMPT
    assert image == {"mime_type": "image/png", "data": b"\x89PNG"}


def test_service_error_is_generic():
    classifier = GeminiClassifier(model=FakeModel(error=RuntimeError("quota exceeded")))
    with pytest.raises(ClassificationError, match="Failed to classify waste image"):
        classifier.classify(b"img")


@pytest.mark.parametrize("text", [None, "", "   "])
def test_empty_response_is_an_error(text):
    classifier = GeminiClassifier(model=FakeModel(text=text))
    with pytest.raises(ClassificationError):
        classifier.classify(b"img")


def test_no_retry_on_failure():
    model = FakeModel(error=RuntimeError("boom"))
    with pytest.raises(ClassificationError):
        GeminiClassifier(model=model).classify(b"img")
    assert len(model.requests) == 1


def test_missing_api_key_fails_on_use_not_construction(monkeypatch):
    monkeypatch.setattr("wastewise.config.GEMINI_API_KEY", None)
    classifier = GeminiClassifier(api_key=None)
    with pytest.raises(ClassificationError):
        classifier.classify(b"img")
