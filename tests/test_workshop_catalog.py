from app.models.workshop import ContentStatus, Workshop, WorkshopTest, WorkshopTestAttempt
from app.services.workshop_catalog import SqlWorkshopCatalog
from tests.conftest import SCHOOL_ID


async def seed_workshop(db):
    db.add_all([
        Workshop(id="w1", school_id=SCHOOL_ID, title="Fractions", status=ContentStatus.approved),
        Workshop(id="w2", school_id=SCHOOL_ID, title="Draft", status=ContentStatus.draft),
        Workshop(id="w9", school_id="other", title="Elsewhere", status=ContentStatus.approved),
        WorkshopTest(id="t1", workshop_id="w1", school_id=SCHOOL_ID, title="Quiz 1",
                     status=ContentStatus.approved, max_score=10),
        WorkshopTest(id="t2", workshop_id="w1", school_id=SCHOOL_ID, title="Quiz 2",
                     status=ContentStatus.approved, max_score=20),
        WorkshopTest(id="t3", workshop_id="w1", school_id=SCHOOL_ID, title="Quiz 3",
                     status=ContentStatus.in_review, max_score=50),
    ])
    for test_id, score, submitted in [
        ("t1", 4, True),
        ("t1", 9, True),
        ("t1", 10, False),
        ("t2", 15, True),
    ]:
        db.add(
            WorkshopTestAttempt(
                school_id=SCHOOL_ID,
                test_id=test_id,
                workshop_id="w1",
                student_user_id="student-1",
                total_score=score,
                is_submitted=submitted,
            )
        )
    await db.flush()


async def test_approved_tests_and_max_score(db):
    await seed_workshop(db)
    catalog = SqlWorkshopCatalog(db)

    assert await catalog.list_approved_test_ids("w1", SCHOOL_ID) == {"t1", "t2"}
    assert await catalog.list_approved_test_ids("w1", "other") == set()
    assert await catalog.max_possible_score("w1", SCHOOL_ID) == 30


async def test_submitted_score_uses_best_attempt_per_test(db):
    await seed_workshop(db)
    catalog = SqlWorkshopCatalog(db)

    assert await catalog.total_submitted_score("w1", SCHOOL_ID, "student-1") == 24
    assert await catalog.total_submitted_score("w1", SCHOOL_ID, "student-2") == 0


async def test_counts_approved_workshops_of_school(db):
    await seed_workshop(db)

    assert await SqlWorkshopCatalog(db).count_approved_workshops(SCHOOL_ID) == 1
