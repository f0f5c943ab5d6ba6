"""
Waste image classification with Gemini
The model answers in a fixed text format which is parsed here
"""

import logging
import re
from typing import Optional

import google.generativeai as genai
import requests

from wastewise import config
from wastewise.errors import ClassificationError
from wastewise.schemas import ClassificationResult

logger = logging.getLogger(__name__)

CLASSIFICATION_PROMPT = """Analyze this image and classify the waste shown. Provide:
1. The main category (one of: Recyclable, Hazardous, Organic, Non-Recyclable, Industrial)
2. Confidence score (0-1)
3. Three specific recommendations for handling or recycling this waste
Format the response exactly as follows (including the ---):
Category: [category]
Confidence: [score]
---
- [recommendation 1]
- [recommendation 2]
- [recommendation 3]"""

SEPARATOR = "---"
UNKNOWN_CATEGORY = "Unknown"

_CATEGORY_RE = re.compile(r"Category:[ \t]*(.+)")
# Leading number only, so "0.82 (high)" still reads as 0.82
_CONFIDENCE_RE = re.compile(r"Confidence:[ \t]*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_BULLET_RE = re.compile(r"^- ")


def parse_classification(text: str) -> ClassificationResult:
    """Parse the model's answer into category, confidence and recommendations.

    Missing pieces fall back to defaults instead of failing: no Category line
    gives "Unknown", no readable Confidence gives 0, and a missing
    recommendation block gives an empty list.
    """
    parts = [part.strip() for part in text.split(SEPARATOR)]
    header = parts[0]
    recommendations = parts[1] if len(parts) > 1 else ""

    category_match = _CATEGORY_RE.search(header)
    category = category_match.group(1).strip() if category_match else ""

    confidence = 0.0
    confidence_match = _CONFIDENCE_RE.search(header)
    if confidence_match:
        try:
            confidence = float(confidence_match.group(1))
        except ValueError:
            confidence = 0.0

    recommendation_list = []
    for line in recommendations.split("\n"):
        line = _BULLET_RE.sub("", line.strip()).strip()
        if line:
            recommendation_list.append(line)

    return ClassificationResult(
        classification=category or UNKNOWN_CATEGORY,
        confidence=confidence,
        recommendations=recommendation_list,
    )


class GeminiClassifier:
    """Sends an image plus the classification prompt to Gemini"""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, model=None):
        self.api_key = api_key or config.GEMINI_API_KEY
        self.model_name = model_name or config.GEMINI_MODEL
        self._model = model

    @property
    def model(self):
        """Configured on first use so the app starts without a key"""
        if self._model is None:
            if not self.api_key:
                raise ClassificationError("GEMINI_API_KEY (or GOOGLE_API_KEY) must be set in environment variables")
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    def classify(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ClassificationResult:
        if not image_bytes:
            raise ClassificationError("Failed to classify waste image")

        try:
            response = self.model.generate_content([
                CLASSIFICATION_PROMPT,
                {"mime_type": mime_type, "data": image_bytes},
            ])
            text = response.text if response else None
        except Exception as e:
            logger.error("Error classifying waste image: %s", e)
            raise ClassificationError("Failed to classify waste image") from e

        if not text or not text.strip():
            logger.error("Empty response from Gemini")
            raise ClassificationError("Failed to classify waste image")

        result = parse_classification(text)
        logger.info("Classified image as %s (confidence %.2f)", result.classification, result.confidence)
        return result

    def classify_url(self, image_url: str) -> ClassificationResult:
        """Download a stored image and classify it"""
        try:
            resp = requests.get(image_url, timeout=10)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Could not fetch image %s: %s", image_url, e)
            raise ClassificationError("Failed to classify waste image") from e

        mime_type = resp.headers.get("content-type", "image/jpeg").split(";")[0]
        return self.classify(resp.content, mime_type)
