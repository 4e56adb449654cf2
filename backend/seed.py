"""Create a sample questionnaire and print its one-time admin password.

Usage: DATABASE_URL=sqlite:///./questionnaires.db python seed.py
"""
import logging

from db import database
from schemas import QuestionnaireCreate
from services import QuestionnaireService

logger = logging.getLogger(__name__)

SAMPLE = {
    "title": "Customer Feedback Survey",
    "description": "Thank you for taking the time to provide your feedback. "
                   "Your input is valuable to us and will help improve our services.",
    "questions": [
        {"label": "How would you rate your overall experience with our service?", "type": "radio",
         "options": ["Excellent", "Good", "Fair", "Poor", "Very Poor"]},
        {"label": "Which of these words would you use to describe our product?", "type": "radio",
         "options": ["Reliable", "High-quality", "Useful", "Overpriced", "Impractical"]},
        {"label": "How likely are you to recommend our company to a friend or colleague?", "type": "radio",
         "options": ["Very Likely", "Likely", "Neutral", "Unlikely", "Very Unlikely"]},
        {"label": "What was the primary reason for your visit today?", "type": "text"},
    ],
}


def seed() -> None:
    database.create_all()
    db = database.session()
    try:
        row, password = QuestionnaireService(db).create(QuestionnaireCreate(**SAMPLE))
    finally:
        db.close()
    print(f"Created questionnaire {row.id} ({row.title})")
    print(f"Admin password (shown once): {password}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
