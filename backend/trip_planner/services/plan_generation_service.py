# backend/trip_planner/services/plan_generation_service.py

import json
from typing import Callable, List, Optional

from trip_planner.core.errors import PlanGenerationError
from trip_planner.core.llm import call_llm
from trip_planner.core.logger import logger
from trip_planner.models.generation_models import GeneratePlanQuery, GeneratedPlan


# places per day, by travel pace
PACE_INSTRUCTIONS = {
    "relaxed": "Recommend only 1-2 places per day.",
    "packed": "Fill each day with exactly 5 places.",
}
DEFAULT_PACE_INSTRUCTION = "Recommend 3-4 places per day, matching the travel pace."

MAX_TITLE_LENGTH = 25


def build_system_instruction(speed: Optional[str]) -> str:
    pace = PACE_INSTRUCTIONS.get(speed or "", DEFAULT_PACE_INSTRUCTION)
    return f"""
You are the best travel planner there is.
Build a travel plan that satisfies the conditions you receive.
Give the trip a creative title of at most {MAX_TITLE_LENGTH} characters that fits the conditions.
Answer ONLY with JSON in the format below. Never add any other explanation.
{pace}
- Recommend each place at most once across the whole trip.
- The keys of the "plan" object must be sequential numbers starting from 1 ("1", "2", "3", ...).
JSON example: {{"title": "Busan healing & food tour", "plan": {{"1": [{{"place_name": "Gyeongbokgung"}}], "2": [{{"place_name": "Gangmun Beach"}}]}}}}
"""


def build_prompt(query: GeneratePlanQuery, place_names: List[str]) -> str:
    return f"""
- Destination: {", ".join(query.regions)}
- Travel period: {query.start} ~ {query.end}
- Companions: {query.companion}
- Travel style: {", ".join(query.styles)}
- Travel pace: {query.speed}
- Main transport: {", ".join(query.transports)}
- You MUST choose places only from this list: [{", ".join(place_names)}]
"""


def parse_generated_plan(raw: str) -> GeneratedPlan:
    """
    Parse model output into {title, plan}.

    Tolerates a surrounding ```json fence and text around the JSON object.
    Raises PlanGenerationError for anything that is not a JSON object.
    """
    if raw is None or not raw.strip():
        raise PlanGenerationError("Empty response from generation service")

    content = raw.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content = "\n".join(lines)

    json_start = content.find("{")
    json_end = content.rfind("}")
    if json_start != -1 and json_end > json_start:
        content = content[json_start:json_end + 1]

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise PlanGenerationError(f"Generation response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PlanGenerationError("Generation response is not a JSON object")

    title = data.get("title")
    plan = data.get("plan")
    return GeneratedPlan(
        title=title if isinstance(title, str) else "",
        plan=plan if isinstance(plan, dict) else {},
    )


class PlanGenerationService:
    """Trip constraints + allowed place names -> proposed day-by-day plan."""

    def __init__(self, completion_fn: Optional[Callable[[str, str], str]] = None):
        self.complete = completion_fn or call_llm

    def generate(self, query: GeneratePlanQuery, place_names: List[str]) -> GeneratedPlan:
        if not place_names:
            raise PlanGenerationError(
                f"No places found for regions [{', '.join(query.regions)}]"
            )

        system_instruction = build_system_instruction(query.speed)
        prompt = build_prompt(query, place_names)
        logger.debug(f"Plan generation prompt: {prompt}")

        try:
            raw = self.complete(system_instruction, prompt)
        except Exception as e:
            logger.error(f"Generation service call failed: {e}")
            raise PlanGenerationError("Generation service call failed") from e

        logger.debug(f"Plan generation raw response: {raw[:500] if raw else raw}")
        plan = parse_generated_plan(raw)
        logger.info(f"Generated plan '{plan.title}' with {len(plan.plan)} days")
        return plan
