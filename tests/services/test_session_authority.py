"""Session Authority + Credential Exchange — codes, sessions, rotation, sign-out.

Tests cover:
    - exchange of a fresh code installs a session and returns a cookie
    - unknown, expired, and blank codes fail with AuthError
    - a second exchange of the same code fails distinctly (AuthCodeReusedError)
    - get_identity: no cookie, live cookie, stale cookie (cleared), near-expiry (rotated)
    - rotation grace: the superseded cookie still resolves, never clears, and
      concurrent requests with it rotate the session only once
    - sign_out revokes the session and clears the cookie
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, update

from smart_bookmark.config import get_settings
from smart_bookmark.core.errors import AuthCodeReusedError, AuthError
from smart_bookmark.core.session_policy import digest_credential, utc_now
from smart_bookmark.models.auth_session import AuthCode, AuthSession
from smart_bookmark.infrastructure.session_authority import SqlSessionAuthority
from smart_bookmark.services.credential_exchange import CredentialExchange

COOKIE = get_settings().session_cookie_name


async def _exchange(authority, email="ada@example.com"):
    code = await authority.issue_code(email, "Ada Lovelace", "https://img/ada.png")
    result = await CredentialExchange(authority).exchange(code)
    return code, result


async def test_exchange_installs_session(authority):
    _, result = await _exchange(authority)
    assert result.identity.email == "ada@example.com"
    assert result.identity.label == "Ada Lovelace"
    [cookie] = result.cookies
    assert cookie.name == COOKIE
    assert cookie.value
    assert cookie.max_age == get_settings().session_ttl_seconds


async def test_exchanged_cookie_resolves_identity(authority):
    _, result = await _exchange(authority)
    identity, mutations = await authority.get_identity({COOKIE: result.cookies[0].value})
    assert identity == result.identity
    assert mutations == []


async def test_second_exchange_of_same_code_fails_distinctly(authority):
    code, _ = await _exchange(authority)
    with pytest.raises(AuthCodeReusedError) as exc:
        await CredentialExchange(authority).exchange(code)
    assert exc.value.code == "AUTH_CODE_REUSED"
    assert exc.value.reason == "auth_failed"


async def test_unknown_code_fails(authority):
    with pytest.raises(AuthError) as exc:
        await CredentialExchange(authority).exchange("not-a-real-code")
    assert exc.value.code == "AUTH_FAILED"


@pytest.mark.parametrize("code", [None, "", "   "])
async def test_blank_code_fails_without_lookup(code):
    class _Authority:
        async def exchange_code(self, code):
            raise AssertionError("must not be called")

    with pytest.raises(AuthError):
        await CredentialExchange(_Authority()).exchange(code)


async def test_expired_code_fails(authority, test_db):
    code = await authority.issue_code("late@example.com")
    await test_db.execute(
        update(AuthCode)
        .where(AuthCode.code_hash == digest_credential(code))
        .values(expires_at=utc_now() - timedelta(seconds=1)),
    )
    await test_db.commit()
    with pytest.raises(AuthError) as exc:
        await CredentialExchange(authority).exchange(code)
    assert not isinstance(exc.value, AuthCodeReusedError)


async def test_issue_code_reuses_identity_for_same_email(authority):
    _, first = await _exchange(authority)
    _, second = await _exchange(authority)
    assert first.identity.id == second.identity.id


async def test_no_cookie_is_anonymous(authority):
    assert await authority.get_identity({}) == (None, [])


async def test_unknown_cookie_is_cleared(authority):
    identity, mutations = await authority.get_identity({COOKIE: "bogus"})
    assert identity is None
    [cookie] = mutations
    assert cookie.is_deletion


async def test_near_expiry_session_is_rotated(authority, test_db):
    _, result = await _exchange(authority)
    old_token = result.cookies[0].value
    await test_db.execute(
        update(AuthSession)
        .where(AuthSession.token_hash == digest_credential(old_token))
        .values(expires_at=utc_now() + timedelta(minutes=5)),
    )
    await test_db.commit()
    test_db.expire_all()

    identity, mutations = await authority.get_identity({COOKIE: old_token})
    assert identity == result.identity
    [cookie] = mutations
    assert cookie.value and cookie.value != old_token

    fresh, _ = await authority.get_identity({COOKIE: cookie.value})
    assert fresh == result.identity


async def test_sign_out_revokes_session(authority, test_db):
    _, result = await _exchange(authority)
    token = result.cookies[0].value
    [cookie] = await authority.sign_out({COOKIE: token})
    assert cookie.is_deletion

    test_db.expire_all()
    row = (await test_db.execute(
        select(AuthSession).where(AuthSession.token_hash == digest_credential(token)),
    )).scalar_one()
    assert row.revoked_at is not None
    assert (await authority.get_identity({COOKIE: token}))[0] is None


# ─── rotation grace ──────────────────────────────────────────────

async def _near_expiry_session(authority, test_db):
    _, result = await _exchange(authority)
    token = result.cookies[0].value
    await test_db.execute(
        update(AuthSession)
        .where(AuthSession.token_hash == digest_credential(token))
        .values(expires_at=utc_now() + timedelta(minutes=30)),
    )
    await test_db.commit()
    test_db.expire_all()
    return result.identity, token


async def test_superseded_cookie_resolves_without_mutation(authority, test_db):
    identity, old_token = await _near_expiry_session(authority, test_db)
    first, rotated = await authority.get_identity({COOKIE: old_token})
    assert first == identity and len(rotated) == 1

    second, mutations = await authority.get_identity({COOKIE: old_token})
    assert second == identity
    assert mutations == []


async def test_same_cookie_twice_rotates_once(authority, test_db):
    _, old_token = await _near_expiry_session(authority, test_db)
    await authority.get_identity({COOKIE: old_token})
    await authority.get_identity({COOKIE: old_token})

    test_db.expire_all()
    row = (await test_db.execute(select(AuthSession))).scalar_one()
    assert row.previous_token_hash == digest_credential(old_token)
    assert row.token_hash != digest_credential(old_token)


async def test_losing_rotation_race_keeps_identity_and_cookie(
    authority, test_db, test_session_factory,
):
    identity, old_token = await _near_expiry_session(authority, test_db)
    load_session = authority._load_session
    winner_cookies = []

    async def load_then_race(digest):
        record = await load_session(digest)
        async with test_session_factory() as other_db:
            _, cookies = await SqlSessionAuthority(
                other_db, authority.settings,
            ).get_identity({COOKIE: old_token})
        winner_cookies.extend(cookies)
        return record

    authority._load_session = load_then_race
    loser, mutations = await authority.get_identity({COOKIE: old_token})

    assert loser == identity
    assert mutations == []
    [winner] = winner_cookies
    authority._load_session = load_session
    assert (await authority.get_identity({COOKIE: winner.value}))[0] == identity


async def test_superseded_cookie_cleared_after_grace(authority, test_db):
    _, old_token = await _near_expiry_session(authority, test_db)
    await authority.get_identity({COOKIE: old_token})
    grace = timedelta(seconds=authority.settings.session_rotation_grace_seconds)
    await test_db.execute(
        update(AuthSession)
        .where(AuthSession.previous_token_hash == digest_credential(old_token))
        .values(rotated_at=utc_now() - 2 * grace),
    )
    await test_db.commit()
    test_db.expire_all()

    identity, mutations = await authority.get_identity({COOKIE: old_token})
    assert identity is None
    assert mutations[0].is_deletion


async def test_sign_out_with_superseded_cookie_revokes(authority, test_db):
    _, old_token = await _near_expiry_session(authority, test_db)
    _, [fresh] = await authority.get_identity({COOKIE: old_token})
    await authority.sign_out({COOKIE: old_token})

    test_db.expire_all()
    assert (await authority.get_identity({COOKIE: fresh.value}))[0] is None
