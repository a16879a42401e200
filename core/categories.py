"""
Work categories offered on job posts and seeker profiles.
"""
from typing import Dict, List

WORK_CATEGORIES: List[str] = [
    "Setup & Events",
    "Cleaning",
    "Logistics & Warehouse",
    "Food Service",
    "Heavy Lifting",
    "Maintenance",
    "Landscaping",
    "Administrative",
    "Customer Service",
    "Delivery",
]

CATEGORY_EMOJI: Dict[str, str] = {
    "Setup & Events": "🎪",
    "Cleaning": "🧹",
    "Logistics & Warehouse": "📦",
    "Food Service": "🍽️",
    "Heavy Lifting": "💪",
    "Maintenance": "🔧",
    "Landscaping": "🌱",
    "Administrative": "📋",
    "Customer Service": "🤝",
    "Delivery": "🚚",
}


def category_emoji(category: str) -> str:
    return CATEGORY_EMOJI.get(category, "💼")
