import os
import tempfile
from pathlib import Path

# must be set before template_studio.db.session creates its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TS_SKIP_STARTUP_INIT"] = "1"
os.environ["USER_SETTINGS_FILE"] = str(
    Path(tempfile.mkdtemp(prefix="template-studio-")) / "user_settings.json"
)

import pytest  # noqa: E402

from template_studio.db import models  # noqa: E402,F401
from template_studio.db.base import Base  # noqa: E402
from template_studio.db.session import make_engine, session_factory  # noqa: E402
from template_studio.db.store import RecordStore  # noqa: E402


@pytest.fixture()
def db_session():
    """Create an in-memory database session."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def store(db_session) -> RecordStore:
    return RecordStore(db_session)


@pytest.fixture()
def client():
    """API client over a freshly created in-memory schema."""
    from fastapi.testclient import TestClient

    from template_studio.api import server
    from template_studio.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(server.app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sample_template_data():
    return {
        "name": "Modern Professional",
        "description": "Two column resume",
        "category": "modern",
        "document_type": "resume",
        "design_config": {
            "colors": {"primary": "#000000", "text": "#111111"},
            "typography": {"fontFamily": "Inter", "fontSize": {"body": "11pt"}},
            "layout": {"columns": 2},
        },
        "template_structure": {
            "sections": [
                {"id": "s1", "name": "Summary", "type": "summary", "order": 1},
                {"id": "s2", "name": "Experience", "type": "experience", "order": 2},
                {"id": "s3", "name": "Extras", "type": "custom", "order": 3},
            ],
            "layout": {"columns": 2},
        },
        "target_industries": ["technology"],
        "target_specialization": ["software_engineering"],
        "target_experience_level": "mid",
        "is_draft": False,
    }
