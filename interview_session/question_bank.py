"""Static seed questions used to open an interview and as a generation fallback."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel


class SeedQuestion(BaseModel):
    text: str
    ideal_answer: Optional[str] = None
    language_id: Optional[int] = None


PYTHON_LANGUAGE_ID = 71  # Judge0 id for Python 3

QUESTION_BANK: Dict[str, Dict[str, List[SeedQuestion]]] = {
    "behavioral": {
        "easy": [
            SeedQuestion(text="Tell me about yourself."),
            SeedQuestion(text="What are your biggest strengths?"),
        ],
        "medium": [
            SeedQuestion(text="Tell me about a time you had to work with a difficult coworker."),
            SeedQuestion(text="Describe a project you are particularly proud of."),
        ],
        "hard": [
            SeedQuestion(text="Describe a time you failed. What did you learn from it?"),
            SeedQuestion(text="Tell me about a time you had to make a critical decision with limited information."),
        ],
    },
    "theory": {
        "easy": [
            SeedQuestion(
                text="What is an API?",
                ideal_answer=(
                    "An API is a contract that lets one program request data or behaviour from another "
                    "through defined endpoints, inputs and outputs without knowing its internals."
                ),
            ),
        ],
        "medium": [
            SeedQuestion(
                text="Explain the difference between SQL and NoSQL databases.",
                ideal_answer=(
                    "SQL databases are relational with fixed schemas, joins and ACID transactions. NoSQL "
                    "databases use flexible schemas such as documents or key-value pairs and usually scale "
                    "horizontally with relaxed consistency."
                ),
            ),
        ],
        "hard": [
            SeedQuestion(
                text="What is polymorphism in object-oriented programming? Provide an example.",
                ideal_answer=(
                    "Polymorphism lets code call the same method on objects of different classes and get "
                    "class specific behaviour, for example a draw method on Circle and Square subclasses "
                    "of a Shape base class."
                ),
            ),
        ],
    },
    "coding": {
        "easy": [
            SeedQuestion(
                text="Write a function that returns the largest number in a list.",
                language_id=PYTHON_LANGUAGE_ID,
            ),
        ],
        "medium": [
            SeedQuestion(
                text="Write a function to check if a string is a palindrome.",
                language_id=PYTHON_LANGUAGE_ID,
            ),
        ],
        "hard": [
            SeedQuestion(
                text=(
                    "Given a sorted list of integers, write a function that finds the first and last "
                    "position of a given target value using binary search."
                ),
                language_id=PYTHON_LANGUAGE_ID,
            ),
        ],
    },
}


def pick_seed(category: str, difficulty: str, asked: Iterable[str] = ()) -> SeedQuestion:
    """Return the first seed for ``category``/``difficulty`` not yet asked.

    Falls back to the first medium question of the category once the bucket
    is exhausted so callers always receive something to ask.
    """

    seen = set(asked)
    bucket = QUESTION_BANK[category].get(difficulty) or QUESTION_BANK[category]["medium"]
    for seed in bucket:
        if seed.text not in seen:
            return seed
    return QUESTION_BANK[category]["medium"][0]


def ideal_answer_for(text: str) -> Optional[str]:
    for buckets in QUESTION_BANK.values():
        for seeds in buckets.values():
            for seed in seeds:
                if seed.text == text:
                    return seed.ideal_answer
    return None


__all__ = ["QUESTION_BANK", "SeedQuestion", "ideal_answer_for", "pick_seed"]
