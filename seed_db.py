"""One-time DB setup: create tables and seed a playable qualification season."""
from datetime import datetime, timedelta, timezone

from seasonquiz.core.security import create_access_token
from seasonquiz.db.session import Base, get_engine, get_session_factory
from seasonquiz.db.models import Question, RoleEnum, Season, User
from seasonquiz.schemas.question import QuestionCreate
from seasonquiz.services import question_bank, season_registry

SAMPLE_QUESTIONS = [
    ("What is the capital of France?", ["Paris", "Lyon", "Marseille", "Nice"], "Paris"),
    ("How many continents are there?", ["5", "6", "7", "8"], "7"),
    ("Which planet is known as the Red Planet?", ["Venus", "Mars", "Jupiter", "Mercury"], "Mars"),
    ("What is the chemical symbol for gold?", ["Ag", "Au", "Gd", "Go"], "Au"),
    ("Who wrote 'Romeo and Juliet'?", ["Dickens", "Austen", "Shakespeare", "Tolstoy"], "Shakespeare"),
    ("What is 12 x 12?", ["124", "144", "132", "154"], "144"),
    ("Which ocean is the largest?", ["Atlantic", "Indian", "Arctic", "Pacific"], "Pacific"),
    ("In which year did the first moon landing happen?", ["1965", "1969", "1972", "1959"], "1969"),
    ("What gas do plants absorb from the air?", ["Oxygen", "Nitrogen", "Carbon dioxide", "Helium"], "Carbon dioxide"),
    ("How many sides does a hexagon have?", ["5", "6", "7", "8"], "6"),
]

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

session_factory = get_session_factory()
with session_factory() as db:
    # 2. Admin and student users
    users = {}
    for email, full_name, role in [
        ("admin@example.com", "Admin User", RoleEnum.ADMIN),
        ("student@example.com", "Student User", RoleEnum.STUDENT),
    ]:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, full_name=full_name, role=role)
            db.add(user)
            db.commit()
            db.refresh(user)
            print(f"✅ Created {role.value}: {email}")
        else:
            print(f"  {email} already exists")
        users[role] = user

    # 3. An open qualification season, made the only active one
    season = db.query(Season).filter(Season.name == "Season 1 Qualifier").first()
    if not season:
        now = datetime.now(timezone.utc)
        season = Season(
            name="Season 1 Qualifier",
            description="Answer at least half of the questions correctly to qualify",
            start_at=now - timedelta(hours=1),
            end_at=now + timedelta(days=30),
            is_qualification_round=True,
            minimum_score_percentage=50,
        )
        db.add(season)
        db.commit()
        db.refresh(season)
        print(f"✅ Created season: {season.name}")
    else:
        print("  Qualification season already exists")
    season_registry.activate(db, season.id)

    # 4. Sample questions
    existing = db.query(Question).filter(Question.season_id == season.id).count()
    if existing == 0:
        for text, options, correct in SAMPLE_QUESTIONS:
            question_bank.add_question(
                db, QuestionCreate(text=text, options=options, correct_answer=correct), season.id
            )
        print(f"✅ Added {len(SAMPLE_QUESTIONS)} questions")
    else:
        print(f"  Season already has {existing} questions")

    # 5. Dev tokens (the auth collaborator issues these in production)
    for role, user in users.items():
        token = create_access_token(data={"sub": str(user.id), "role": role.value})
        print(f"🔑 {role.value} token: {token}")

print("🎉 Seed complete")
