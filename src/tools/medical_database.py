"""Patient record lookup answered straight to the caller."""

from __future__ import annotations

import logging
import re
from typing import Any

from relay.schemas import ToolResult, ToolResultDirection
from tools.base import Tool, ToolDefinition, ToolParameter

LOGGER = logging.getLogger(__name__)

FALLBACK_ANSWER = "Please call back after some time"

# First matching pattern wins.
_ANSWERS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"appointment", re.IGNORECASE),
        "You have an appointment with Dr. Smith on 12th August 2021 at 10:00 AM",
    ),
    (re.compile(r"prescription", re.IGNORECASE), "You have a prescription for 5mg of Lisinopril"),
    (re.compile(r"lab results", re.IGNORECASE), "Your lab results are normal"),
)


def lookup_answer(user_query: str) -> str:
    for pattern, answer in _ANSWERS:
        if pattern.search(user_query):
            return answer
    return FALLBACK_ANSWER


class MedicalDatabaseTool(Tool):
    """Answers appointment, prescription and lab result questions.

    The answer is shown to the caller directly rather than read out by the model.
    """

    destination = ToolResultDirection.TO_CLIENT

    _definition = ToolDefinition(
        name="referToMedicalDatabase",
        description=(
            "You can call this function to get the refer to medical database "
            "when asked for appointment, prescription or lab results."
        ),
        parameters=(
            ToolParameter(
                name="user_query",
                type="string",
                description="User query to refer to medical database",
                required=True,
            ),
        ),
    )

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        user_query = str(arguments.get("user_query") or "")
        LOGGER.info("Referring to medical database for: %s", user_query)
        return ToolResult(text=lookup_answer(user_query), destination=self.destination)
