import os
import random

from matchnight.match_repo import MatchRepo
from matchnight.matching import generate_matches, partition_completed
from matchnight.participant_repo import ParticipantRepo
from matchnight.questions import load_questionnaire
from matchnight.session import Session

# === CONFIG ===
PARTICIPANTS_TABLE = os.environ.get("PARTICIPANTS_TABLE", "matchnight_participants")
MATCHES_TABLE = os.environ.get("MATCHES_TABLE", "matchnight_matches")
N_PARTICIPANTS = int(os.environ.get("N_PARTICIPANTS", "20"))
DROPOUT_RATE = 0.15

NAMES = ["Sam", "Maya", "Noah", "Ava", "Lina", "Iris", "Leo", "Kai", "Zoe", "Rae",
         "Miles", "Nico", "Sofia", "Jules", "Daisy", "Erika", "Niles", "Harrison"]


def seed_participant(questionnaire, repo, group):
    session = Session(questionnaire, repo)
    session.start(random.choice(NAMES), group)
    # some people leave before the last question
    stop_at = len(questionnaire)
    if random.random() < DROPOUT_RATE:
        stop_at = random.randrange(len(questionnaire))
    for question in questionnaire.questions[:stop_at]:
        session.answer(random.choice(question.option_codes), question.id)
    return session.participant


def print_matches(found, by_id):
    print(f"\nMatches: {len(found)} records\n")
    for m in found[:25]:
        a = by_id[m.participant_a].display_name
        b = by_id[m.participant_b].display_name
        print(f"{a:20} -> {b:20}  score={m.score:3d}  ({m.category})")


if __name__ == "__main__":
    questionnaire = load_questionnaire()
    participants = ParticipantRepo(PARTICIPANTS_TABLE, questionnaire)
    matches = MatchRepo(MATCHES_TABLE, owner="seed_script")

    for i in range(N_PARTICIPANTS):
        seed_participant(questionnaire, participants, "A" if i % 2 == 0 else "B")
    print(f"Seeded {N_PARTICIPANTS} synthetic participants into {PARTICIPANTS_TABLE}.")

    everyone = participants.list_all()
    group_a, group_b = partition_completed(everyone)
    found = generate_matches(group_a, group_b, questionnaire)
    matches.replace_all(found)

    print_matches(found, {p.id: p for p in everyone})
