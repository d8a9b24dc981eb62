import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from acknowledge import models  # noqa: E402,F401
from acknowledge.db import Base  # noqa: E402
from acknowledge.models.acknowledgement import (  # noqa: E402
    Acknowledgement,
    Assignment,
    Document,
)
from acknowledge.services.membership import StaticUserDirectory  # noqa: E402

LASTMOD = 1560805365


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture()
def directory():
    return StaticUserDirectory({"max": ["user", "super"], "regular": ["user"]})


@pytest.fixture()
def acktest(db_session):
    """Three documents, assignments and a mix of current and outdated acknowledgements."""
    db_session.add_all(
        [
            Document(id="dokuwiki:acktest1", lastmod=LASTMOD),
            Document(id="dokuwiki:acktest2", lastmod=LASTMOD),
            Document(id="dokuwiki:acktest3", lastmod=LASTMOD),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Assignment(
                document_id="dokuwiki:acktest1",
                page_assignees="regular, @super",
                pattern_assignees="",
            ),
            Assignment(
                document_id="dokuwiki:acktest2",
                page_assignees="@super",
                pattern_assignees="",
            ),
            Assignment(
                document_id="dokuwiki:acktest3",
                page_assignees="@user",
                pattern_assignees="",
            ),
        ]
    )
    # outdated, current, outdated but replaced, current replacing outdated, outdated
    db_session.add_all(
        [
            Acknowledgement(document_id="dokuwiki:acktest3", user="regular", ack=1550801270),
            Acknowledgement(document_id="dokuwiki:acktest3", user="regular", ack=1560805555),
            Acknowledgement(document_id="dokuwiki:acktest1", user="max", ack=1550805770),
            Acknowledgement(document_id="dokuwiki:acktest1", user="max", ack=1560805770),
            Acknowledgement(document_id="dokuwiki:acktest3", user="max", ack=1560805000),
        ]
    )
    db_session.commit()
    return db_session
