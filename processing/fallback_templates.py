# processing/fallback_templates.py
"""Static activity content served when generation cannot succeed."""

from __future__ import annotations

from typing import Any

import structlog

from models import ActivityContentModel, ActivityType, parse_activity_content

logger = structlog.get_logger(__name__)

# Payloads use the wire shape. Every template must pass content validation for
# all reader ages.
FALLBACK_PAYLOADS: dict[ActivityType, dict[str, Any]] = {
    ActivityType.WHO: {
        "realCharacters": [
            {
                "name": "Maya",
                "role": "main character",
                "description": "A curious girl who loves reading books at the library.",
            },
            {
                "name": "Mr. Chen",
                "role": "librarian",
                "description": "The kind librarian who always saves a new book for Maya.",
            },
        ],
        "decoyCharacters": [
            {
                "name": "Captain Rivers",
                "role": "ship captain",
                "description": "A sailor who explores the ocean on a big boat.",
            }
        ],
    },
    ActivityType.WHERE: {
        "realSettings": [
            {
                "name": "The Maple Street Library",
                "description": "An old library full of tall shelves and quiet reading corners.",
            },
            {
                "name": "The Reading Realm",
                "description": "A magical place where stories come to life and books can talk.",
            },
        ],
        "decoySettings": [
            {
                "name": "The Snowy Mountain Cabin",
                "description": "A small wooden cabin high in the cold, snowy mountains.",
            }
        ],
    },
    ActivityType.SEQUENCE: {
        "orderedEvents": [
            {"id": 1, "text": "Maya races to the library after school.", "segment": 1},
            {"id": 2, "text": "Mr. Chen gives Maya a new book to read.", "segment": 1},
            {
                "id": 3,
                "text": "Maya finds a mysterious door behind the history shelf.",
                "segment": 2,
            },
            {
                "id": 4,
                "text": "Maya steps through the door into the Reading Realm.",
                "segment": 2,
            },
        ],
        "shuffledEvents": [
            {
                "id": 3,
                "text": "Maya finds a mysterious door behind the history shelf.",
                "segment": 2,
            },
            {"id": 1, "text": "Maya races to the library after school.", "segment": 1},
            {
                "id": 4,
                "text": "Maya steps through the door into the Reading Realm.",
                "segment": 2,
            },
            {"id": 2, "text": "Mr. Chen gives Maya a new book to read.", "segment": 1},
        ],
    },
    ActivityType.MAIN_IDEA: {
        "question": "What is the main idea of the story?",
        "options": [
            {
                "id": "A",
                "text": "Maya's love of reading leads her to a magical adventure.",
                "isCorrect": True,
                "feedback": "Correct! The story follows how Maya's love of books takes her somewhere new.",
            },
            {
                "id": "B",
                "text": "Libraries are closed on weekends.",
                "isCorrect": False,
                "feedback": "The story never talks about when the library is open.",
            },
            {
                "id": "C",
                "text": "Mr. Chen wants to become a teacher.",
                "isCorrect": False,
                "feedback": "Mr. Chen is a librarian, and the story does not mention his plans.",
            },
            {
                "id": "D",
                "text": "Spark the dragon likes to sleep all day.",
                "isCorrect": False,
                "feedback": "This detail is not part of the story and is not its main point.",
            },
        ],
    },
    ActivityType.VOCABULARY: {
        "vocabularyWords": [
            {
                "word": "curious",
                "definition": "Wanting to learn or know about something.",
                "context": "Maya was curious about the door behind the shelf.",
            },
            {
                "word": "mysterious",
                "definition": "Strange and hard to explain or understand.",
                "context": "She found a mysterious door in the library.",
            },
            {
                "word": "librarian",
                "definition": "A person who takes care of the books in a library.",
                "context": "The librarian always had a new book waiting for Maya.",
            },
        ],
        "decoyDefinitions": [
            {"definition": "A large body of salt water.", "isUsed": False},
            {"definition": "A tool that shows how warm or cold it is.", "isUsed": False},
        ],
    },
    ActivityType.PREDICT: {
        "question": "What do you think Maya will do next in the Reading Realm?",
        "predictions": [
            {
                "id": "A",
                "text": "Maya will explore the Reading Realm with Spark the dragon.",
                "plausibilityScore": 9,
                "feedback": "Very likely! Spark greeted Maya and seems ready to show her around.",
            },
            {
                "id": "B",
                "text": "Maya will listen to a talking book about the Realm.",
                "plausibilityScore": 7,
                "feedback": "Likely, because the books in the Reading Realm can talk.",
            },
            {
                "id": "C",
                "text": "Maya will go home right away and forget about the door.",
                "plausibilityScore": 4,
                "feedback": "Possible, but Maya is curious and probably wants to look around first.",
            },
            {
                "id": "D",
                "text": "Maya will fly to the moon in a rocket.",
                "plausibilityScore": 2,
                "feedback": "Unlikely, since nothing in the story mentions rockets or space.",
            },
        ],
    },
}


def get_fallback_content(activity_type: ActivityType | str) -> ActivityContentModel:
    """Return a fresh fallback instance for ``activity_type``.

    Raises:
        ValueError: ``activity_type`` is not a known activity type.
    """
    activity_type = ActivityType(activity_type)
    content = parse_activity_content(
        {
            **FALLBACK_PAYLOADS[activity_type],
            "activityType": activity_type.value,
            "isFallback": True,
        }
    )
    logger.info("Serving fallback activity content.", activity_type=activity_type.value)
    return content
