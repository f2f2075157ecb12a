# tests/test_core.py
"""
测试 DictSession 的命令/响应状态机。
使用 conftest 中的 FakeNetworkClient 作为流替身，统计写入的命令。
"""

import asyncio
from dataclasses import replace

import pytest

from conftest import SHOW_DB_REPLY
from dict_core.exceptions import (
    DictConnectionError,
    InvalidDatabaseError,
    InvalidStrategyError,
    MalformedReplyError,
    NetworkError,
    ProtocolError,
    StateError,
)
from dict_core.models import Database, MatchingStrategy
from dict_core.state import SessionStatus

DEFINE_HELLO = [
    "150 2 definitions retrieved",
    '151 "hello" wn "WordNet (r) 3.0 (2006)"',
    "hello",
    "    n 1: an expression of greeting",
    ".",
    '151 "hello" foldoc "Free On-line Dictionary of Computing"',
    "hello",
    "",
    "   A greeting.",
    ".",
    "250 ok [d/m/c = 2/0/18; 0.000r 0.000u 0.000s]",
]

MATCH_HEL = [
    "152 5 matches found",
    'wn "hello"',
    'foldoc "hello"',
    'wn "hell"',
    'wn "help"',
    'foldoc "hell"',
    ".",
    "250 ok",
]

SHOW_STRAT_REPLY = [
    "111 2 strategies available",
    'exact "Match headwords exactly"',
    'prefix "Match prefixes"',
    ".",
    "250 ok",
]


async def _opened(make_session, replies=None, **kwargs):
    session, fake = make_session(replies, **kwargs)
    await session.open()
    return session, fake


# =========================================================================
# 生命周期
# =========================================================================


@pytest.mark.asyncio
async def test_open_success(make_session):
    session, fake = await _opened(make_session)

    assert session.status == SessionStatus.OPEN
    assert session.state.capabilities == ["auth", "mime"]
    assert session.state.message_id == "<100.200@dict.example.org>"
    assert session.state.banner.startswith("dict.example.org dictd")
    assert fake.written == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "greeting",
    ["530 access denied", "420 server temporarily unavailable", "hello there", None],
)
async def test_open_rejects_bad_greeting(make_session, greeting):
    session, fake = make_session(greeting=greeting)

    with pytest.raises(DictConnectionError):
        await session.open()

    assert session.status == SessionStatus.UNOPENED
    assert fake.closed is True


@pytest.mark.asyncio
async def test_open_connect_failure(make_session):
    session, fake = make_session()
    fake.connect_error = NetworkError("连接失败")

    with pytest.raises(DictConnectionError):
        await session.open()

    assert session.status == SessionStatus.UNOPENED
    assert "连接失败" in session.state.last_error


@pytest.mark.asyncio
async def test_open_twice_is_noop(make_session):
    session, fake = await _opened(make_session)
    await session.open()

    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_open_sends_client_identification(make_session, valid_config):
    config = replace(valid_config, client_name="dict-core 1.0")
    session, fake = await _opened(
        make_session, {"CLIENT dict-core 1.0": ["250 ok"]}, config=config
    )

    assert fake.written == ["CLIENT dict-core 1.0"]
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_client_rejection_is_ignored(make_session, valid_config):
    config = replace(valid_config, client_name="dict-core")
    session, _ = await _opened(
        make_session, {"CLIENT dict-core": ["502 command not implemented"]}, config=config
    )

    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_operations_before_open_raise(make_session):
    session, fake = make_session()

    with pytest.raises(StateError):
        await session.define("hello")
    with pytest.raises(StateError):
        await session.list_databases()

    assert fake.written == []


@pytest.mark.asyncio
async def test_close_sends_quit(make_session):
    session, fake = await _opened(make_session, {"QUIT": ["221 bye"]})

    await session.close()

    assert fake.written == ["QUIT"]
    assert fake.closed is True
    assert session.status == SessionStatus.CLOSED


@pytest.mark.asyncio
async def test_close_is_idempotent(make_session):
    session, fake = await _opened(make_session, {"QUIT": ["221 bye"]})

    await session.close()
    await session.close()

    assert fake.count("QUIT") == 1


@pytest.mark.asyncio
async def test_close_never_opened(make_session):
    session, fake = make_session()

    await session.close()
    await session.close()

    assert fake.written == []
    assert session.status == SessionStatus.UNOPENED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "quit_reply",
    [
        [],  # 服务器直接断开 (EOF)
        ["250 ok"],  # 非 221
        ["garbage"],  # 无法解析
        [NetworkError("接收超时 (1.0s)")],
    ],
)
async def test_close_swallows_failures(make_session, quit_reply):
    session, fake = await _opened(make_session, {"QUIT": quit_reply})

    await session.close()

    assert session.status == SessionStatus.CLOSED
    assert fake.closed is True


@pytest.mark.asyncio
async def test_operations_after_close_raise(make_session):
    session, _ = await _opened(make_session, {"QUIT": ["221 bye"]})
    await session.close()

    with pytest.raises(StateError):
        await session.match("hello")
    with pytest.raises(StateError):
        await session.open()


@pytest.mark.asyncio
async def test_async_context_manager(make_session):
    session, fake = make_session({"QUIT": ["221 bye"]})

    async with session as s:
        assert s.status == SessionStatus.OPEN

    assert session.status == SessionStatus.CLOSED
    assert fake.written == ["QUIT"]


# =========================================================================
# SHOW DB / 目录缓存
# =========================================================================


@pytest.mark.asyncio
async def test_list_databases_is_cached(make_session):
    session, fake = await _opened(make_session, {"SHOW DB": SHOW_DB_REPLY})

    first = await session.list_databases()
    second = await session.list_databases()

    assert first == second
    assert [db.name for db in first] == ["wn", "foldoc"]
    assert fake.count("SHOW DB") == 1


@pytest.mark.asyncio
async def test_catalog_example(make_session):
    reply = [
        "110 1 database present",
        'foldoc "Free On-line Dictionary of Computing"',
        ".",
        "250 ok",
    ]
    session, _ = await _opened(make_session, {"SHOW DB": reply})

    await session.list_databases()

    assert dict(session.catalog) == {
        "foldoc": Database(name="foldoc", description="Free On-line Dictionary of Computing")
    }


@pytest.mark.asyncio
async def test_list_databases_none_present(make_session):
    session, _ = await _opened(make_session, {"SHOW DB": ["554 no databases present"]})

    assert await session.list_databases() == []
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_list_databases_missing_completion(make_session):
    reply = ["110 1 database present", 'wn "WordNet"', ".", "552 huh"]
    session, fake = await _opened(make_session, {"SHOW DB": reply})

    with pytest.raises(ProtocolError):
        await session.list_databases()

    # 数据块中途出错，读游标不可信，会话被中止
    assert session.status == SessionStatus.CLOSED
    assert fake.closed is True


@pytest.mark.asyncio
async def test_state_is_a_copy(make_session):
    session, _ = await _opened(make_session, {"SHOW DB": SHOW_DB_REPLY})
    await session.list_databases()

    snapshot = session.state
    snapshot.catalog.clear()
    snapshot.capabilities.append("xyz")

    assert len(session.catalog) == 2
    assert "xyz" not in session.state.capabilities


# =========================================================================
# DEFINE
# =========================================================================


@pytest.mark.asyncio
async def test_define_two_definitions(make_session):
    session, fake = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE * "hello"': DEFINE_HELLO}
    )

    definitions = await session.define("hello", "*")

    assert fake.written == ["SHOW DB", 'DEFINE * "hello"']
    assert len(definitions) == 2

    wn, foldoc = definitions
    assert wn.headword == "hello"
    assert wn.database is session.catalog["wn"]
    assert wn.body == ["hello", "    n 1: an expression of greeting"]
    assert foldoc.database.description == "Free On-line Dictionary of Computing"
    assert foldoc.text == "hello\n\n   A greeting."


@pytest.mark.asyncio
async def test_define_no_match(make_session):
    session, _ = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE wn "xyzzy"': ["552 no match"]}
    )

    assert await session.define("xyzzy", "wn") == []
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_define_invalid_database(make_session):
    session, _ = await _opened(
        make_session,
        {"SHOW DB": SHOW_DB_REPLY, 'DEFINE nope "hello"': ["550 invalid database"]},
    )

    with pytest.raises(InvalidDatabaseError) as exc:
        await session.define("hello", "nope")

    assert exc.value.code == 550
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_define_accepts_database_object(make_session):
    session, fake = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE wn "hello"': ["552 no match"]}
    )

    await session.define("hello", Database("wn", "WordNet"))

    assert fake.written[-1] == 'DEFINE wn "hello"'


@pytest.mark.asyncio
async def test_define_first_match_passed_through(make_session):
    session, fake = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE ! "hello"': ["552 no match"]}
    )

    await session.define("hello", "!")

    assert fake.written[-1] == 'DEFINE ! "hello"'


@pytest.mark.asyncio
async def test_define_uses_cached_catalog(make_session):
    session, fake = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE * "hello"': DEFINE_HELLO}
    )

    await session.list_databases()
    await session.define("hello")
    await session.define("hello")

    assert fake.count("SHOW DB") == 1
    assert fake.count('DEFINE * "hello"') == 2


@pytest.mark.asyncio
async def test_define_unknown_status(make_session):
    session, _ = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE * "hello"': ["499 what"]}
    )

    with pytest.raises(ProtocolError) as exc:
        await session.define("hello")

    assert exc.value.code == 499
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_define_undeclared_database_aborts(make_session):
    reply = ["150 1 definition retrieved", '151 "hello" jargon "Jargon File"', "text", "."]
    session, fake = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE * "hello"': reply}
    )

    with pytest.raises(ProtocolError, match="jargon"):
        await session.define("hello")

    assert session.status == SessionStatus.CLOSED
    assert fake.closed is True


@pytest.mark.asyncio
async def test_define_eof_mid_block(make_session):
    reply = ["150 1 definition retrieved", '151 "hello" wn "WordNet"', "partial"]
    session, _ = await _opened(
        make_session, {"SHOW DB": SHOW_DB_REPLY, 'DEFINE * "hello"': reply}
    )

    with pytest.raises(NetworkError):
        await session.define("hello")

    assert session.status == SessionStatus.CLOSED


# =========================================================================
# MATCH
# =========================================================================


@pytest.mark.asyncio
async def test_match_collapses_duplicates(make_session):
    session, fake = await _opened(make_session, {'MATCH * prefix "hel"': MATCH_HEL})

    words = await session.match("hel", "prefix", "*")

    assert words == ["hello", "hell", "help"]
    # MATCH 不需要目录
    assert fake.count("SHOW DB") == 0


@pytest.mark.asyncio
async def test_match_defaults(make_session):
    session, fake = await _opened(make_session, {'MATCH * . "hel"': ["552 no match"]})

    assert await session.match("hel") == []
    assert fake.written == ['MATCH * . "hel"']


@pytest.mark.asyncio
async def test_match_accepts_objects(make_session):
    session, fake = await _opened(make_session, {'MATCH wn exact "hi"': ["552 no match"]})

    await session.match("hi", MatchingStrategy("exact"), Database("wn"))

    assert fake.written == ['MATCH wn exact "hi"']


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply, error",
    [
        (["550 invalid database"], InvalidDatabaseError),
        (["551 invalid strategy"], InvalidStrategyError),
        (["499 what"], ProtocolError),
        (["bogus"], MalformedReplyError),
    ],
)
async def test_match_errors(make_session, reply, error):
    session, _ = await _opened(make_session, {'MATCH wn fuzzy "hel"': reply})

    with pytest.raises(error):
        await session.match("hel", "fuzzy", "wn")


@pytest.mark.asyncio
async def test_match_unexpected_preliminary_aborts(make_session):
    """收到预示数据块的非预期 1xx 状态码时，会话被中止。"""
    session, _ = await _opened(
        make_session, {'MATCH * . "hel"': ["110 databases", 'wn "x"', ".", "250 ok"]}
    )

    with pytest.raises(ProtocolError):
        await session.match("hel")

    assert session.status == SessionStatus.CLOSED


@pytest.mark.asyncio
async def test_match_timeout_aborts(make_session):
    session, fake = await _opened(
        make_session,
        {'MATCH * . "hel"': ["152 1 match found", NetworkError("接收超时 (1.0s)")]},
    )

    with pytest.raises(NetworkError):
        await session.match("hel")

    assert session.status == SessionStatus.CLOSED
    assert "接收超时" in session.state.last_error


@pytest.mark.asyncio
async def test_define_cancelled_mid_block_aborts(make_session):
    stall = asyncio.Event()
    session, fake = await _opened(
        make_session,
        {
            "SHOW DB": SHOW_DB_REPLY,
            'DEFINE * "hello"': [
                "150 1 definitions retrieved",
                '151 "hello" wn "WordNet (r) 3.0 (2006)"',
                stall,
                "body",
                ".",
                "250 ok",
            ],
            'MATCH * . "x"': ["552 no match"],
        },
    )

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(session.define("hello"), 0.05)

    assert session.status == SessionStatus.CLOSED
    assert fake.closed is True
    assert "取消" in session.state.last_error

    # 残留的半截响应不会被下一条命令误读
    with pytest.raises(StateError):
        await session.match("x")
    assert fake.count('MATCH * . "x"') == 0


@pytest.mark.asyncio
async def test_cancel_while_waiting_for_lock_keeps_session(make_session):
    stall = asyncio.Event()
    session, fake = await _opened(
        make_session,
        {
            "SHOW STRAT": ["555 no strategies available"],
            "SHOW SERVER": ["114 server information", stall, "dictd", ".", "250 ok"],
        },
    )

    running = asyncio.create_task(session.show_server())
    await asyncio.sleep(0.01)
    queued = asyncio.create_task(session.list_strategies())
    await asyncio.sleep(0)
    queued.cancel()
    with pytest.raises(asyncio.CancelledError):
        await queued

    stall.set()
    assert await running == "dictd"
    assert session.status == SessionStatus.OPEN
    assert fake.count("SHOW STRAT") == 0


# =========================================================================
# SHOW STRAT / SHOW INFO / SHOW SERVER
# =========================================================================


@pytest.mark.asyncio
async def test_list_strategies_not_cached(make_session):
    session, fake = await _opened(make_session, {"SHOW STRAT": SHOW_STRAT_REPLY})

    first = await session.list_strategies()
    second = await session.list_strategies()

    assert first == second == [
        MatchingStrategy("exact", "Match headwords exactly"),
        MatchingStrategy("prefix", "Match prefixes"),
    ]
    assert fake.count("SHOW STRAT") == 2


@pytest.mark.asyncio
async def test_list_strategies_none_available(make_session):
    session, _ = await _opened(make_session, {"SHOW STRAT": ["555 no strategies"]})

    assert await session.list_strategies() == []


@pytest.mark.asyncio
async def test_list_strategies_unknown_status(make_session):
    session, _ = await _opened(make_session, {"SHOW STRAT": ["502 not implemented"]})

    with pytest.raises(ProtocolError):
        await session.list_strategies()


@pytest.mark.asyncio
async def test_show_info(make_session):
    reply = ["112 database information follows", "WordNet info", "..dotted", ".", "250 ok"]
    session, _ = await _opened(make_session, {"SHOW INFO wn": reply})

    assert await session.show_info("wn") == "WordNet info\n.dotted"


@pytest.mark.asyncio
async def test_show_info_invalid_database(make_session):
    session, _ = await _opened(make_session, {"SHOW INFO nope": ["550 invalid database"]})

    with pytest.raises(InvalidDatabaseError):
        await session.show_info("nope")


@pytest.mark.asyncio
async def test_show_server(make_session):
    reply = ["114 server information follows", "dictd 1.12.1", ".", "250 ok"]
    session, _ = await _opened(make_session, {"SHOW SERVER": reply})

    assert await session.show_server() == "dictd 1.12.1"


# =========================================================================
# 并发
# =========================================================================


@pytest.mark.asyncio
async def test_concurrent_operations_are_serialized(make_session):
    session, fake = await _opened(
        make_session,
        {
            "SHOW DB": SHOW_DB_REPLY,
            'DEFINE * "hello"': DEFINE_HELLO,
            'MATCH * prefix "hel"': MATCH_HEL,
            "SHOW STRAT": SHOW_STRAT_REPLY,
        },
    )

    definitions, words, strategies = await asyncio.gather(
        session.define("hello"),
        session.match("hel", "prefix"),
        session.list_strategies(),
    )

    assert [d.database.name for d in definitions] == ["wn", "foldoc"]
    assert words == ["hello", "hell", "help"]
    assert [s.name for s in strategies] == ["exact", "prefix"]
    assert session.status == SessionStatus.OPEN


@pytest.mark.asyncio
async def test_sessions_are_independent(make_session):
    a, _ = await _opened(make_session, {"SHOW DB": SHOW_DB_REPLY})
    b, _ = await _opened(make_session, {"SHOW DB": ["554 no databases present"]})

    await a.list_databases()
    await b.list_databases()

    assert len(a.catalog) == 2
    assert len(b.catalog) == 0
