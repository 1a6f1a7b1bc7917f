"""
Mock extractor - keyword heuristics, no external service.
Used for tests, development and when Ollama is unavailable.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

from .extractor import BaseExtractor, normalize_proposal


class MockExtractor(BaseExtractor):
    """
    Deterministic extractor that reads cue phrases from the narrative.

    Sentences mentioning a trigger become the antecedent, sentences with an
    aggressive or disruptive verb become the behavior, and sentences about
    what staff did afterwards become the consequence.
    """

    ANTECEDENT_CUES = ("before", "was working", "were working", "during", "when", "had taken", "asked to", "was told")
    CONSEQUENCE_CUES = ("after", "then", "sent", "removed", "was given", "redirected", "called", "lost")

    INCIDENT_TYPE_CUES = {
        "Physical Aggression": ("pushed", "hit", "kicked", "punched", "shoved", "bit", "slapped"),
        "Verbal Outburst": ("yelled", "screamed", "cursed", "swore", "shouted"),
        "Property Destruction": ("broke", "threw", "tore", "ripped", "smashed", "knocked over", "damaged"),
        "Elopement": ("ran out", "left the room", "left class", "ran away"),
        "Noncompliance": ("refused", "would not", "wouldn't", "ignored"),
        "Self-Injury": ("hit himself", "hit herself", "banged his head", "banged her head", "scratched himself", "scratched herself"),
    }

    FUNCTION_CUES = {
        "Escape/Avoidance": ("worksheet", "task", "work", "assignment", "test", "math"),
        "Attention Seeking": ("attention", "laughed", "peers", "classmates watched"),
        "Obtain Tangible": ("pencil", "toy", "tablet", "ipad", "snack", "taken"),
        "Sensory Stimulation": ("noise", "loud", "lights", "rocking"),
    }

    BEHAVIOR_VERBS = tuple(verb for cues in INCIDENT_TYPE_CUES.values() for verb in cues)

    def __init__(self, model_name: str = "mock-extractor", delay_sec: float = 0.0):
        super().__init__(model_name)
        self.delay_sec = delay_sec

    async def extract(self, narrative: str) -> Dict[str, Any]:
        if self.delay_sec:
            await asyncio.sleep(self.delay_sec)

        if not narrative or not narrative.strip():
            return {}

        sentences = self._split_sentences(narrative)
        lowered = narrative.lower()

        raw = {
            "summary": sentences[0] if sentences else "",
            "antecedent": self._first_matching(sentences, self.ANTECEDENT_CUES),
            "behavior": self._first_matching(sentences, self.BEHAVIOR_VERBS),
            "consequence": self._first_matching(sentences, self.CONSEQUENCE_CUES, skip_first=True),
            "incidentType": self._classify(lowered),
            "functionOfBehavior": self._functions(lowered),
            "date": "today" if "today" in lowered else ("yesterday" if "yesterday" in lowered else None),
            "time": self._find_time(lowered),
        }
        return normalize_proposal(raw)

    def _split_sentences(self, text: str) -> List[str]:
        parts = re.split(r"(?<=[.!?])\s+", text.strip())
        return [p.strip() for p in parts if p.strip()]

    def _first_matching(self, sentences: List[str], cues, skip_first: bool = False) -> str:
        candidates = sentences[1:] if skip_first else sentences
        for sentence in candidates:
            lowered = sentence.lower()
            if any(cue in lowered for cue in cues):
                return sentence
        return ""

    def _classify(self, lowered: str) -> Optional[str]:
        # Self-injury cues overlap with aggression verbs, so check them first
        for incident_type in ("Self-Injury",) + tuple(t for t in self.INCIDENT_TYPE_CUES if t != "Self-Injury"):
            if any(cue in lowered for cue in self.INCIDENT_TYPE_CUES[incident_type]):
                return incident_type
        return None

    def _functions(self, lowered: str) -> List[str]:
        return [name for name, cues in self.FUNCTION_CUES.items() if any(cue in lowered for cue in cues)]

    def _find_time(self, lowered: str) -> Optional[str]:
        match = re.search(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b", lowered)
        if not match:
            match = re.search(r"\bat (\d{1,2}):(\d{2})\b", lowered)
            if not match:
                return None
            return f"{int(match.group(1)):02d}:{match.group(2)}"

        hours = int(match.group(1)) % 12
        if match.group(3) == "pm":
            hours += 12
        minutes = match.group(2) or "00"
        return f"{hours:02d}:{minutes}"
