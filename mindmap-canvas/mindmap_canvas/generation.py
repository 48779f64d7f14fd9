# mindmap-canvas/mindmap_canvas/generation.py
"""Text-generation collaborators that propose child labels for a topic.

A collaborator answers two questions about a topic string: a flat list of
short subtopic labels, and a nested outline (label plus children, any
depth). Transport-level problems raise CollaboratorFailure; a reply that
arrives but cannot be used comes back empty, and the controller substitutes
the fallback label set.
"""
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from .config import DEFAULT_GEMINI_MODEL, DEFAULT_GEMINI_TIMEOUT
from .errors import CollaboratorFailure

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

LABELS_PROMPT = (
    "List 5-8 subtopics for {topic}. Return only the subtopics as a simple "
    "comma-separated list with no numbering or additional text."
)

OUTLINE_PROMPT = """I want a mind map about "{topic}". Create a comprehensive mind map structure with the main topic and multiple levels of subtopics.

Return ONLY a valid JSON object with the following structure:
{{
  "text": "{topic}",
  "children": [
    {{
      "text": "Subtopic 1",
      "children": [
        {{"text": "Sub-subtopic 1.1", "children": []}}
      ]
    }}
  ]
}}

Include at least 5-8 main subtopics, and 2-4 sub-subtopics for each main subtopic. Do not include any explanatory text, only the JSON structure."""

_FALLBACK_LABELS: List[Tuple[Tuple[str, ...], List[str]]] = [
    (("python",), [
        "Basic Syntax & Data Types", "Control Flow & Functions", "Data Structures",
        "Object-Oriented Programming", "Libraries & Frameworks", "Web Development with Python",
        "Data Science & ML", "Testing & Debugging",
    ]),
    (("javascript", "js"), [
        "Core Concepts & Syntax", "DOM Manipulation", "Asynchronous JS", "Modern JS (ES6+)",
        "Frameworks & Libraries", "State Management", "Testing in JavaScript",
        "Performance Optimization",
    ]),
    (("web develop",), [
        "HTML & CSS Fundamentals", "JavaScript Essentials", "Frontend Frameworks",
        "Backend Development", "Responsive Design", "Web Performance",
        "Security Best Practices", "Deployment & DevOps",
    ]),
    (("machine learning", "ml"), [
        "Data Preprocessing", "Supervised Learning", "Unsupervised Learning", "Neural Networks",
        "Deep Learning", "Model Evaluation", "Feature Engineering", "ML in Production",
    ]),
    (("data science",), [
        "Data Collection & Cleaning", "Exploratory Data Analysis", "Statistical Methods",
        "Machine Learning", "Data Visualization", "Big Data Technologies",
        "Communication & Storytelling", "Ethics in Data Science",
    ]),
]

GENERIC_LABELS = [
    "Overview", "Key Concepts", "Fundamentals", "Advanced Topics",
    "Practical Applications", "Tools & Technologies", "Best Practices", "Resources & Learning",
]

# Bullets, numbering and emphasis that models like to wrap labels in
_LABEL_NOISE = re.compile(r"^\s*(?:[-*•●>#]+|\d+[.)\]]|\(\d+\))\s*")
_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_ZERO_WIDTH = dict.fromkeys(map(ord, "\u200b\u200c\u200d\ufeff"))


def fallback_labels(topic: str) -> List[str]:
    """Fixed label set used when a collaborator gives nothing usable."""
    lowered = topic.lower()
    for keys, labels in _FALLBACK_LABELS:
        if any(_mentions(lowered, key) for key in keys):
            return list(labels)
    return list(GENERIC_LABELS)


def _mentions(text: str, key: str) -> bool:
    # Short keys ("js", "ml") must match a whole word
    if len(key) <= 3:
        return re.search(rf"\b{re.escape(key)}\b", text) is not None
    return key in text


def clean_label(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    text = raw.translate(_ZERO_WIDTH)
    text = _LABEL_NOISE.sub("", text)
    text = text.replace("**", "").replace("`", "")
    return text.strip().strip("\"'").strip()


def clean_labels(raw_labels: Iterable[Any]) -> List[str]:
    """Trims markup artifacts and drops empty entries, keeping order."""
    cleaned = (clean_label(label) for label in raw_labels)
    return [label for label in cleaned if label]


def parse_label_list(content: str) -> List[str]:
    """Splits a comma- or newline-separated reply into labels."""
    separator = "," if "," in content else "\n"
    return clean_labels(content.split(separator))


def extract_json_block(content: str) -> str:
    """Returns the JSON text of a reply, unwrapping a fenced code block if present."""
    match = _FENCE.search(content)
    if match:
        return match.group(1).strip()
    start, end = content.find("{"), content.rfind("}")
    if start != -1 and end > start:
        return content[start:end + 1]
    return content.strip()


class OutlineNode:
    """One entry of a nested outline returned by a collaborator."""
    def __init__(self, text: str, children: Optional[List['OutlineNode']] = None):
        self.text = text
        self.children: List['OutlineNode'] = children if children is not None else []

    @classmethod
    def from_dict(cls, data: Any, depth: int = 0, max_depth: int = 32) -> Optional['OutlineNode']:
        """Builds an outline from loosely-shaped data, dropping malformed parts."""
        if isinstance(data, str):
            text = clean_label(data)
            return cls(text) if text else None
        if not isinstance(data, dict):
            return None
        text = clean_label(data.get("text") or data.get("title") or "")
        if not text:
            return None
        raw_children = data.get("children")
        children: List[OutlineNode] = []
        if isinstance(raw_children, list) and depth < max_depth:
            for raw_child in raw_children:
                child = cls.from_dict(raw_child, depth + 1, max_depth)
                if child is not None:
                    children.append(child)
        return cls(text, children)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "children": [child.to_dict() for child in self.children]}

    def __repr__(self) -> str:
        return f"OutlineNode(text='{self.text}', children={len(self.children)})"


class TextGenerator:
    """Interface of a text-generation collaborator."""

    async def generate_labels(self, topic: str) -> List[str]:
        raise NotImplementedError

    async def generate_outline(self, topic: str) -> OutlineNode:
        raise NotImplementedError


class StaticGenerator(TextGenerator):
    """Offline collaborator answering from the fallback label table."""

    async def generate_labels(self, topic: str) -> List[str]:
        return fallback_labels(topic)

    async def generate_outline(self, topic: str) -> OutlineNode:
        return OutlineNode(topic, [OutlineNode(label) for label in fallback_labels(topic)])


class GeminiGenerator(TextGenerator):
    """Collaborator backed by the Gemini generateContent endpoint."""
    def __init__(self, api_key: str, model: str = DEFAULT_GEMINI_MODEL,
                 timeout: float = DEFAULT_GEMINI_TIMEOUT, use_cache: bool = True,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not api_key:
            raise ValueError("A Gemini API key is required.")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.use_cache = use_cache
        self._transport = transport
        self._cache: Dict[Tuple[str, str], Any] = {}

    async def generate_labels(self, topic: str) -> List[str]:
        cached = self._cache.get(("labels", topic))
        if cached is not None:
            return list(cached)

        content = await self._complete(LABELS_PROMPT.format(topic=topic), topic)
        labels = parse_label_list(content)
        if labels and self.use_cache:
            self._cache[("labels", topic)] = list(labels)
        return labels

    async def generate_outline(self, topic: str) -> OutlineNode:
        cached = self._cache.get(("outline", topic))
        if cached is not None:
            return cached

        content = await self._complete(OUTLINE_PROMPT.format(topic=topic), topic)
        try:
            data = json.loads(extract_json_block(content))
        except json.JSONDecodeError as e:
            logger.warning("Outline reply for '%s' is not valid JSON: %s", topic, e)
            return OutlineNode(topic)

        outline = OutlineNode.from_dict(data) or OutlineNode(topic)
        if outline.children and self.use_cache:
            self._cache[("outline", topic)] = outline
        return outline

    async def _complete(self, prompt: str, topic: str) -> str:
        """Sends one prompt and returns the first candidate's text."""
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        url = GEMINI_URL.format(model=self.model)
        logger.info("Requesting generation for '%s' from %s", topic, self.model)
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload,
                                             headers={"Content-Type": "application/json"})
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise CollaboratorFailure(f"Generation request for '{topic}' timed out.", topic) from e
        except httpx.HTTPStatusError as e:
            raise CollaboratorFailure(
                f"Generation request for '{topic}' failed with HTTP {e.response.status_code}.", topic) from e
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"Generation request for '{topic}' failed: {e}", topic) from e
        except ValueError as e:
            raise CollaboratorFailure(f"Generation reply for '{topic}' is not JSON.", topic) from e

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise CollaboratorFailure(f"Unexpected generation reply shape for '{topic}'.", topic) from e

    def clear_cache(self) -> None:
        self._cache.clear()
