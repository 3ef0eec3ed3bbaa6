"""Demo: record completions and read the course dashboard via TestClient.

Run with:
    python scripts/demo_progress_flow.py
"""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from app.api.dependencies import curriculum_repo, learner_directory
from app.main import app
from app.repos.curriculum_repo import load_curriculum_file
from app.repos.learner_directory import load_learner_file
from app.services import token_service

CURRICULUM = Path(__file__).with_name("sample_curriculum.json")
LEARNERS = Path(__file__).with_name("sample_learners.json")
COURSE = "intro-python"


def _auth(sub: str, roles: list[str] | None = None) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=roles)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)

    # ── Seed data ───────────────────────────────────────────────────
    load_curriculum_file(curriculum_repo, CURRICULUM)
    load_learner_file(learner_directory, LEARNERS)

    # ── Step 1: ada finishes every activity of "variables" ──────────
    for activity in ("variables-quiz", "variables-exercise"):
        r = client.post(
            f"/v1/progress/courses/{COURSE}/modules/variables"
            f"/activities/{activity}/complete",
            headers=_auth("ada"),
        )
        print(f"1. ada  {activity:<20} → {r.status_code} {r.json()}")

    # ── Step 2: repeat write is refused, not an error ───────────────
    r = client.post(
        f"/v1/progress/courses/{COURSE}/modules/variables"
        "/activities/variables-quiz/complete",
        headers=_auth("ada"),
    )
    print(f"2. ada  variables-quiz again  → {r.status_code} {r.json()}")

    # ── Step 3: bob finishes one activity only ──────────────────────
    r = client.post(
        f"/v1/progress/courses/{COURSE}/modules/loops/activities/loops-quiz/complete",
        headers=_auth("bob"),
    )
    print(f"3. bob  loops-quiz            → {r.status_code} {r.json()}")

    # ── Step 4: admin reads the course dashboard ────────────────────
    r = client.get(
        f"/v1/dashboard/courses/{COURSE}", headers=_auth("admin", ["admin"])
    )
    print(f"4. GET  dashboard             → {r.status_code}")
    body = r.json()
    for stat in body["module_stats"]:
        print(
            f"   {stat['unit_tag']:<10} finished={stat['finished']} "
            f"not_finished={stat['not_finished']}"
        )
    print(f"   learners: {[e['display_name'] for e in body['learners']]}")


if __name__ == "__main__":
    main()
