# backend/trip_planner/core/llm.py

from typing import Optional
from openai import OpenAI

from trip_planner.core.config_loader import settings


_client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """Create the OpenAI client on first use so the app imports without a key."""
    global _client
    if _client is None:
        _client = OpenAI(api_key=settings.OPENAI_API_KEY)
    return _client


# ---------------------------------------------------------------------------
# CHAT COMPLETION: system instruction + user prompt -> raw text
# ---------------------------------------------------------------------------
def call_llm(system_instruction: str, prompt: str,
             model: Optional[str] = None,
             temperature: Optional[float] = None) -> str:
    completion = get_client().chat.completions.create(
        model=model or settings.gpt_model,
        messages=[
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": prompt},
        ],
        temperature=settings.generation_temperature if temperature is None else temperature,
    )
    return completion.choices[0].message.content or ""
