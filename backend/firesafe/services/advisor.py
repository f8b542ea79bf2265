from typing import Any, Optional
import logging
import os

from openai import OpenAI

from firesafe.models.estimate import BuildingType, EstimationResult, PackageType, UserInput
from firesafe.services.defaults import BUILDING_TYPE_INFO, PACKAGE_INFO

logger = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

SYSTEM_PROMPT = "You are a professional fire-safety consultant. Answer concisely in Markdown."

PROMPT_TEMPLATE = """
I am designing a fire alarm system for a building with these parameters:
  - Building type: {building}
  - Floors: {floors}
  - Rooms: {rooms}
  - Total floor area: {area} m2{warehouse}
  - Solution package: {package}

Estimated equipment:
{equipment}

Acting as a fire-safety consultant, give a short assessment (3-4 sentences) of how safe and suitable
this plan is for the building type. Then give the 2 most important tips on real-world placement.
Use a professional but friendly tone and format the answer as Markdown.
"""

STORAGE_LABELS = {
    "general": "General goods",
    "flammable": "Flammable goods",
    "chemical": "Chemicals",
}

NO_ADVICE = "Sorry, no advice is available right now."


class AdvisorError(Exception):
    """The text-completion service could not produce advice."""


class SafetyAdvisor:
    """Consultant-style commentary on an estimate.

    The advisor expects a ``client`` exposing the OpenAI
    ``chat.completions.create`` interface. In tests, pass a stub returning an
    object with ``choices[0].message.content``. Without a client and without
    ``OPENAI_API_KEY`` a short local summary is returned instead.
    """

    def __init__(self, client: Optional[Any] = None, model: str = OPENAI_MODEL):
        if client is None and OPENAI_API_KEY:
            client = OpenAI(api_key=OPENAI_API_KEY)
        self.client = client
        self.model = model

    def build_prompt(self, data: UserInput, package_type: PackageType, result: EstimationResult) -> str:
        info = BUILDING_TYPE_INFO[data.building_type]
        warehouse = ""
        if data.building_type == BuildingType.WAREHOUSE:
            warehouse = (
                f"\n  - Stored goods: {STORAGE_LABELS[data.storage_type.value]}"
                f"\n  - Ceiling height: {data.ceiling_height:g} m"
            )
        equipment = "\n".join(f"- {item.quantity} x {item.name}" for item in result.equipment_list)
        return PROMPT_TEMPLATE.format(
            building=info["label"],
            floors=data.floors,
            rooms=data.rooms if data.building_type == BuildingType.RESIDENTIAL else "N/A",
            area=f"{data.total_area:g}",
            warehouse=warehouse,
            package=PACKAGE_INFO[PackageType(package_type)]["label"],
            equipment=equipment or "- (none)",
        )

    def _local_advice(self, data: UserInput, package_type: PackageType, result: EstimationResult) -> str:
        info = BUILDING_TYPE_INFO[data.building_type]
        units = sum(item.quantity for item in result.equipment_list)
        lines = [
            f"**{info['label']}, {PACKAGE_INFO[PackageType(package_type)]['label']}**: "
            f"{units} units across {len(result.equipment_list)} equipment types, "
            f"estimated total {result.total_cost:,.0f}.",
            "",
        ]
        lines.extend(f"- {note}" for note in info["technical_notes"])
        return "\n".join(lines).strip()

    def advise(self, data: UserInput, package_type: PackageType, result: EstimationResult) -> str:
        if self.client is None:
            logger.debug("No LLM client or OpenAI key configured; using local advice")
            return self._local_advice(data, package_type, result)

        prompt = self.build_prompt(data, package_type, result)
        try:
            logger.debug("Requesting advice model=%s", self.model)
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                top_p=0.95,
            )
            content = resp.choices[0].message.content
        except Exception as e:
            logger.exception("Advice request failed: %s", e)
            raise AdvisorError("advice service unavailable") from e

        return (content or "").strip() or NO_ADVICE


def get_advisor() -> SafetyAdvisor:
    return SafetyAdvisor()
