"""Tests for bearer token and reset token services."""

import hashlib
from datetime import timedelta

import pytest
from conftest import make_user
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from app.config import ConfigurationError, Settings
from app.database import Base, utcnow
from app.models.user import User
from app.services.jwt import JWTService
from app.services.reset_token import ResetTokenService, hash_reset_token


def _settings(**overrides) -> Settings:
    settings = Settings()
    settings.JWT_SECRET_KEY = "unit-test-secret"
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _flip(segment: str, index: int) -> str:
    replacement = "A" if segment[index] != "A" else "B"
    return segment[:index] + replacement + segment[index + 1 :]


class TestJWTService:
    """Tests for bearer token issue and verification."""

    def test_round_trip(self):
        service = JWTService(_settings())
        token = service.create_token(user_id=42, role="admin")
        claims = service.decode_token(token)
        assert claims is not None
        assert claims.user_id == 42
        assert claims.role == "admin"

    def test_default_expiry_is_thirty_days(self):
        service = JWTService(_settings())
        claims = service.decode_token(service.create_token(user_id=1, role="user"))
        remaining = claims.expires_at.replace(tzinfo=None) - utcnow()
        assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)

    def test_expired_token_rejected(self):
        service = JWTService(_settings())
        token = service.create_token(user_id=1, role="user", expires_delta=timedelta(seconds=-1))
        assert service.decode_token(token) is None
        assert service.is_token_valid(token) is False

    def test_tampered_payload_rejected(self):
        service = JWTService(_settings())
        header, payload, signature = service.create_token(user_id=1, role="user").split(".")
        tampered = ".".join([header, _flip(payload, len(payload) // 2), signature])
        assert service.decode_token(tampered) is None

    def test_tampered_signature_rejected(self):
        service = JWTService(_settings())
        header, payload, signature = service.create_token(user_id=1, role="user").split(".")
        tampered = ".".join([header, payload, _flip(signature, 0)])
        assert service.decode_token(tampered) is None

    def test_wrong_secret_rejected(self):
        token = JWTService(_settings()).create_token(user_id=1, role="user")
        other = JWTService(_settings(JWT_SECRET_KEY="a-different-secret"))
        assert other.decode_token(token) is None

    def test_garbage_rejected(self):
        service = JWTService(_settings())
        assert service.decode_token("invalid.token.here") is None
        assert service.decode_token("") is None

    def test_missing_secret_is_fatal(self):
        with pytest.raises(ConfigurationError):
            JWTService(_settings(JWT_SECRET_KEY=""))

    def test_settings_validate_reports_missing_secret(self):
        assert "JWT_SECRET_KEY is not set" in _settings(JWT_SECRET_KEY="").validate()
        assert _settings().validate() == []


class TestResetTokenService:
    """Tests for reset token issue and single-use consumption."""

    def _store_token(self, db: Session, user_id: int, service: ResetTokenService) -> str:
        issued = service.issue()
        user = db.get(User, user_id)
        user.password_reset_token_hash = issued.token_hash
        user.password_reset_expires_at = issued.expires_at
        db.commit()
        return issued.plaintext

    def test_issue(self):
        service = ResetTokenService(_settings())
        issued = service.issue()
        assert len(issued.plaintext) == 64
        assert issued.token_hash == hashlib.sha256(issued.plaintext.encode()).hexdigest()
        assert issued.token_hash != issued.plaintext
        remaining = issued.expires_at - utcnow()
        assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)

    def test_issue_is_random(self):
        service = ResetTokenService(_settings())
        assert service.issue().plaintext != service.issue().plaintext

    def test_hash_is_deterministic(self):
        assert hash_reset_token("abc") == hash_reset_token("abc")

    def test_consume_at_most_once(self, db_session: Session):
        service = ResetTokenService(_settings())
        user_id = make_user(db_session, "reset@example.com")["user_id"]
        plaintext = self._store_token(db_session, user_id, service)

        user = service.consume(db_session, plaintext)
        assert user is not None
        assert user.id == user_id
        assert user.password_reset_token_hash is None
        assert user.password_reset_expires_at is None
        db_session.commit()

        assert service.consume(db_session, plaintext) is None

    def test_concurrent_consume_only_one_wins(self, tmp_path):
        """Two claims that both find the token: only the first UPDATE clears it."""
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
        Base.metadata.create_all(bind=engine)
        make_session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        first, second = make_session(), make_session()
        service = ResetTokenService(_settings())
        try:
            user_id = make_user(first, "race@example.com")["user_id"]
            plaintext = self._store_token(first, user_id, service)
            winners = []

            @event.listens_for(first, "do_orm_execute")
            def claim_concurrently(orm_execute_state):
                # Runs after ``first`` has selected the user, right before its UPDATE.
                if orm_execute_state.is_update and not winners:
                    winners.append(service.consume(second, plaintext))
                    second.commit()

            assert service.consume(first, plaintext) is None
            assert winners and winners[0] is not None
            assert winners[0].id == user_id

            check = make_session()
            user = check.get(User, user_id)
            assert user.password_reset_token_hash is None
            assert user.password_reset_expires_at is None
            check.close()
        finally:
            first.close()
            second.close()
            engine.dispose()

    def test_consume_expired_leaves_state(self, db_session: Session):
        service = ResetTokenService(_settings())
        user_id = make_user(db_session, "reset@example.com")["user_id"]
        plaintext = self._store_token(db_session, user_id, service)
        user = db_session.get(User, user_id)
        user.password_reset_expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert service.consume(db_session, plaintext) is None
        db_session.refresh(user)
        assert user.password_reset_token_hash == hash_reset_token(plaintext)

    def test_consume_unknown(self, db_session: Session):
        service = ResetTokenService(_settings())
        make_user(db_session, "reset@example.com")
        assert service.consume(db_session, "not-a-token") is None
        assert service.consume(db_session, "") is None
