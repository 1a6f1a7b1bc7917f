"""
Ollama-backed extractor - asks a local model for the ABC fields as JSON.
"""

import json
from datetime import date
from typing import Any, Dict, List

import ollama

from .extractor import BaseExtractor, normalize_proposal
from ..core.errors import ExtractionError
from ..core.schema import INCIDENT_TYPES, BEHAVIOR_FUNCTIONS
from ..util.logging import logger, sanitize_payload

EXTRACTION_PROMPT = """You extract structured ABC (Antecedent-Behavior-Consequence) data from a teacher's narrative about a behavioural incident.

Extract:
1. summary: a 1-2 sentence overview of the incident
2. antecedent: what was happening immediately before the behavior
3. behavior: specific, observable description of what the student did
4. consequence: what happened immediately after the behavior
5. date: the date the incident occurred as YYYY-MM-DD; "today" and "yesterday" are allowed; null if not mentioned
6. time: the time the incident occurred as HH:MM (24 hour); null if not mentioned
7. incidentType: one of {incident_types}
8. functionOfBehavior: every function that applies, from {behavior_functions}

Leave a field as an empty string (or an empty list) when the narrative says nothing about it. Never guess.

Return ONLY a JSON object with exactly these keys:
summary, antecedent, behavior, consequence, date, time, incidentType, functionOfBehavior"""


class OllamaExtractor(BaseExtractor):
    """Extractor that calls a local Ollama model in JSON mode."""

    def __init__(self, model_name: str, host: str = None, temperature: float = 0.3):
        super().__init__(model_name)
        self.temperature = temperature
        self.client = ollama.AsyncClient(host=host)

    def _build_messages(self, narrative: str) -> List[Dict[str, str]]:
        return [
            {
                'role': 'system',
                'content': EXTRACTION_PROMPT.format(
                    incident_types=", ".join(INCIDENT_TYPES),
                    behavior_functions=", ".join(BEHAVIOR_FUNCTIONS)
                )
            },
            {
                'role': 'user',
                'content': f"Extract ABC data from this narrative:\n\n{narrative}"
            }
        ]

    async def extract(self, narrative: str) -> Dict[str, Any]:
        if not narrative or not narrative.strip():
            return {}

        try:
            response = await self.client.chat(
                model=self.model_name,
                messages=self._build_messages(narrative),
                format='json',
                options={'temperature': self.temperature}
            )
        except ollama.ResponseError as e:
            raise ExtractionError(f"Ollama model error: {e}") from e
        except Exception as e:
            raise ExtractionError(f"Extraction service unavailable: {e}") from e

        content = response.get('message', {}).get('content', '') or '{}'
        try:
            raw = json.loads(content)
        except (json.JSONDecodeError, ValueError):
            # unparseable output carries no information
            logger.warning(f"Extractor returned non-JSON content: {sanitize_payload(content)}")
            return {}

        return normalize_proposal(raw, today=date.today())

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status['ollama_available'] = check_ollama_health()
        return status


def check_ollama_health() -> bool:
    """Check that the Ollama service answers."""
    try:
        ollama.list()
        return True
    except Exception:
        return False
