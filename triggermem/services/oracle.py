"""
Text-analysis oracle adapters for semantic similarity and memory extraction.

The engine only sees the ``Oracle`` contract: a similarity in [0, 1] and a
structured ``Extraction`` or None. Prompting and free-text parsing stay in
the adapter so they can be swapped without touching matching or extraction.
"""

import asyncio
import math
import re
from typing import Any, Dict, List, Optional

from ..models.core import Category, ExtractedMemory, ExtractedTrigger, Extraction, clamp_importance, normalize_word
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import OracleConfig
from ..utils.json_utils import extract_json_object
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

_NUMBER = re.compile(r'[-+]?\d*\.?\d+')

SIMILARITY_PROMPT = """Compare these two texts and give a semantic similarity score between 0 and 1.
Reply ONLY with a decimal number (e.g. 0.85).

Text 1: "{text_a}"
Text 2: "{text_b}"

Similarity score:"""

EXTRACTION_SYSTEM_PROMPT = """You are a memory extraction system for a personal assistant.
Analyse the user's message and extract the information worth remembering about them.

Reply ONLY with valid JSON in this exact format:
```json
{{
  "important": true,
  "memory": {{
    "content": "third-person summary (He/She...), in the language of the message",
    "category": "{categories}",
    "importance": 5
  }},
  "triggers": [
    {{
      "word": "main keyword",
      "category": "{categories}",
      "synonyms": ["syn1", "syn2"]
    }}
  ]
}}
```

Rules:
- important=true only for personal information, preferences or significant facts
- triggers are proper nouns, places, activities or key preferences (max {max_triggers})
- importance is an integer from 1 to 10
- suggest relevant synonyms for each trigger"""


class OracleError(Exception):
    """Custom exception for oracle errors."""
    pass


class Oracle:
    """Contract consumed by the matcher and the extractor."""

    async def similarity(self, text_a: str, text_b: str) -> float:
        """Return a similarity in [0, 1]; 0 on any failure."""
        raise NotImplementedError

    async def extract(self, message: str) -> Optional[Extraction]:
        """Return the structured analysis of a message, or None on failure."""
        raise NotImplementedError

    def health_check(self) -> bool:
        return True


class NullOracle(Oracle):
    """Oracle used when no analysis service is configured."""

    async def similarity(self, text_a: str, text_b: str) -> float:
        return 0.0

    async def extract(self, message: str) -> Optional[Extraction]:
        return None


def parse_similarity(text: str) -> float:
    """Read the first number in a reply, clamped to [0, 1]; 0 if none."""
    match = _NUMBER.search(text or '')
    if not match:
        return 0.0
    try:
        score = float(match.group(0))
    except ValueError:
        return 0.0
    if math.isnan(score):
        return 0.0
    return min(1.0, max(0.0, score))


def parse_extraction(payload: Dict[str, Any], max_triggers: int = 5) -> Extraction:
    """Validate a decoded extraction object into an ``Extraction``.

    Unknown categories fall back to OTHER, importance is clamped to 1-10,
    trigger entries without a usable word are dropped and at most
    ``max_triggers`` are kept.

    Raises:
        OracleError: If the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise OracleError(f'Expected object, got {type(payload).__name__}')

    important = payload.get('important') is True

    memory = None
    memory_data = payload.get('memory')
    if isinstance(memory_data, dict):
        content = memory_data.get('content')
        if isinstance(content, str) and content.strip():
            memory = ExtractedMemory(content=content.strip(),
                                     category=Category.parse(memory_data.get('category')),
                                     importance=clamp_importance(memory_data.get('importance')))

    triggers: List[ExtractedTrigger] = []
    for item in payload.get('triggers') or []:
        if not isinstance(item, dict) or not normalize_word(item.get('word')):
            continue
        synonyms = item.get('synonyms') or []
        if not isinstance(synonyms, list):
            synonyms = []
        triggers.append(
            ExtractedTrigger(word=item['word'],
                             category=Category.parse(item.get('category')),
                             synonyms=[s for s in synonyms if isinstance(s, str)]))
        if len(triggers) >= max_triggers:
            break

    return Extraction(important=important, memory=memory, triggers=triggers)


class BedrockOracle(Oracle):
    """Oracle backed by an Amazon Bedrock model."""

    def __init__(self, llm: BedrockLLM, config: OracleConfig, max_triggers: int = 5):
        """
        Initialize the Bedrock oracle.

        Args:
            llm: Bedrock LLM client
            config: OracleConfig with token limits
            max_triggers: Maximum trigger words requested per extraction
        """
        self.llm = llm
        self.config = config
        self.max_triggers = max_triggers
        self.categories = '|'.join(c.value for c in Category)

        logger.info('Initialized BedrockOracle')

    async def similarity(self, text_a: str, text_b: str) -> float:
        prompt = SIMILARITY_PROMPT.format(text_a=text_a, text_b=text_b)
        try:
            # boto3 is blocking, keep the event loop free while it runs
            reply = await asyncio.to_thread(self.llm.complete, prompt, max_tokens=self.config.similarity_max_tokens)
        except BedrockLLMError as e:
            logger.warning(f'Similarity request failed, using 0: {e}')
            return 0.0

        score = parse_similarity(reply)
        logger.debug(f'Similarity between message and {text_b!r}: {score}')
        return score

    async def extract(self, message: str) -> Optional[Extraction]:
        system_prompt = EXTRACTION_SYSTEM_PROMPT.format(categories=self.categories, max_triggers=self.max_triggers)
        try:
            reply = await asyncio.to_thread(self.llm.complete,
                                            f'Message:\n{message}',
                                            system_prompt=system_prompt,
                                            max_tokens=self.config.extraction_max_tokens)
        except BedrockLLMError as e:
            logger.warning(f'Extraction request failed: {e}')
            return None

        payload = extract_json_object(reply)
        if payload is None:
            logger.warning('No JSON object found in extraction reply')
            return None

        try:
            return parse_extraction(payload, self.max_triggers)
        except OracleError as e:
            logger.warning(f'Invalid extraction payload: {e}')
            return None

    def health_check(self) -> bool:
        return self.llm.health_check()


def create_oracle(config: OracleConfig, llm: Optional[BedrockLLM] = None, max_triggers: int = 5) -> Oracle:
    """Build the oracle named by the configuration."""
    if not config.enabled:
        logger.info('Oracle disabled, semantic matching and extraction are off')
        return NullOracle()
    if llm is None:
        from ..utils.config import config as app_config
        llm = BedrockLLM(app_config.bedrock_llm)
    return BedrockOracle(llm, config, max_triggers)
