from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Hall:
    id: str
    name: str
    neighborhood: str
    description: str
    specialties: List[str] = field(default_factory=list)


HALLS: List[Hall] = [
    Hall(
        id="epicuria-ackerman",
        name="Epic at Ackerman",
        neighborhood="Ackerman Union",
        description="Mediterranean plates, wood-fired pizzas, pasta and pastries.",
        specialties=["Small Plates", "Fresh Pasta", "Pastries"],
    ),
    Hall(
        id="bruin-cafe",
        name="Bruin Café",
        neighborhood="Sproul Hall",
        description="Cold brew, artisan sandwiches, and grab-and-go bites.",
        specialties=["Cold Brew", "Paninis", "Grab & Go"],
    ),
    Hall(
        id="rendezvous",
        name="Rendezvous",
        neighborhood="Rieber Terrace",
        description="Late-night tacos, burritos, ramen, and pan-Asian favorites.",
        specialties=["Tacos", "Burritos", "Bubble Tea"],
    ),
    Hall(
        id="hedrick-study",
        name="The Study at Hedrick",
        neighborhood="Hedrick Hall",
        description="All-day breakfast, waffles, and smoothies in a study lounge.",
        specialties=["Waffles", "Smoothies", "Study Snacks"],
    ),
]

_HALLS_BY_ID: Dict[str, Hall] = {hall.id: hall for hall in HALLS}


def get_hall(hall_id: str) -> Optional[Hall]:
    return _HALLS_BY_ID.get(hall_id)


def is_known_hall(hall_id: str) -> bool:
    return hall_id in _HALLS_BY_ID
