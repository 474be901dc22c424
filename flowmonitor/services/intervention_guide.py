"""
Intervention guide — what to tell the user when an intervention fires.

Each intervention kind maps to a short exercise with a suggested duration and
the research it comes from. All guidance is non-medical and focus-oriented.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from flowmonitor.engine.models import InterventionEvent, InterventionKind


@dataclass(frozen=True)
class GuideEntry:
    kind: InterventionKind
    title: str
    instructions: str
    duration_s: int
    citation: str
    url: str


GUIDE: Dict[InterventionKind, GuideEntry] = {
    InterventionKind.FATIGUE: GuideEntry(
        kind=InterventionKind.FATIGUE,
        title="Time for a Break",
        instructions=(
            "Step away from your desk, stretch, and recharge. Even a brief "
            "diversion from the task restores focus for the next stretch."
        ),
        duration_s=60,
        citation="Ariga, A. & Lleras, A. (2011). Brief diversions improve focus.",
        url="https://doi.org/10.1016/j.cognition.2010.12.007",
    ),
    InterventionKind.EYE_STRAIN: GuideEntry(
        kind=InterventionKind.EYE_STRAIN,
        title="Eye Rest",
        instructions=(
            "Look at something 20 feet away for 20 seconds. Find an object in "
            "the distance and let your eyes focus on it."
        ),
        duration_s=20,
        citation="American Optometric Association: Computer vision syndrome.",
        url="https://www.aoa.org/healthy-eyes/eye-and-vision-conditions/computer-vision-syndrome",
    ),
    InterventionKind.DISTRACTION: GuideEntry(
        kind=InterventionKind.DISTRACTION,
        title="Breathing Exercise",
        instructions="Inhale for 4 seconds, hold for 4, exhale for 4.",
        duration_s=60,
        citation=(
            "Ma, X. et al. (2017). The effect of diaphragmatic breathing on "
            "attention, negative affect and stress."
        ),
        url="https://doi.org/10.3389/fpsyg.2017.00874",
    ),
    InterventionKind.BREATHING: GuideEntry(
        kind=InterventionKind.BREATHING,
        title="Breathing Exercise",
        instructions=(
            "Follow a 4-4-4 rhythm for a minute: inhale for 4 seconds, hold "
            "for 4, exhale for 4."
        ),
        duration_s=60,
        citation=(
            "Ma, X. et al. (2017). The effect of diaphragmatic breathing on "
            "attention, negative affect and stress."
        ),
        url="https://doi.org/10.3389/fpsyg.2017.00874",
    ),
    InterventionKind.POSTURE: GuideEntry(
        kind=InterventionKind.POSTURE,
        title="Posture Check",
        instructions=(
            "Check your posture: feet flat on floor, back straight, shoulders "
            "relaxed, screen at eye level."
        ),
        duration_s=15,
        citation="OSHA eTools: Computer workstations, good working positions.",
        url="https://www.osha.gov/etools/computer-workstations/positions",
    ),
    InterventionKind.HYDRATION: GuideEntry(
        kind=InterventionKind.HYDRATION,
        title="Hydration Reminder",
        instructions=(
            "Take a moment to hydrate. Proper hydration improves focus and "
            "cognitive performance."
        ),
        duration_s=10,
        citation=(
            "Edmonds, C. J. et al. (2013). Water consumption, not expectancies "
            "about water consumption, affects cognitive performance in adults."
        ),
        url="https://doi.org/10.1016/j.appet.2012.10.016",
    ),
    InterventionKind.GENERIC: GuideEntry(
        kind=InterventionKind.GENERIC,
        title="Time for a Break",
        instructions="Step away from your desk, stretch, and recharge.",
        duration_s=60,
        citation="Ariga, A. & Lleras, A. (2011). Brief diversions improve focus.",
        url="https://doi.org/10.1016/j.cognition.2010.12.007",
    ),
}

BREATHING_PHASES = (("Breathe In", 4), ("Hold", 4), ("Breathe Out", 4))


def guide_for(kind: InterventionKind) -> GuideEntry:
    return GUIDE.get(kind, GUIDE[InterventionKind.GENERIC])


def all_entries() -> List[GuideEntry]:
    return list(GUIDE.values())


def breathing_phase(elapsed_s: float) -> str:
    """Which breathing phase a 4-4-4 cycle is in after elapsed_s seconds."""
    cycle = sum(length for _, length in BREATHING_PHASES)
    t = elapsed_s % cycle
    for label, length in BREATHING_PHASES:
        if t < length:
            return label
        t -= length
    return BREATHING_PHASES[-1][0]


def format_prompt(event: InterventionEvent) -> dict:
    """Everything the UI needs to render one intervention."""
    entry = guide_for(event.kind)
    return {
        "kind": event.kind.value,
        "title": entry.title,
        "reason": event.reason,
        "instructions": entry.instructions,
        "duration_s": entry.duration_s,
        "citation": entry.citation,
        "url": entry.url,
    }
