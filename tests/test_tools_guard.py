import pytest

from sqlapigate.tools.guard import (
    StatementClass,
    check_host,
    classify_statement,
    contains_blocked_keyword,
    effective_timeout,
    find_blocked_keyword,
)


def test_check_host_exact_case_insensitive_match():
    assert check_host("https://API.GitHub.com/repos", ["api.github.com"], False) == (True, "")
    ok, reason = check_host("https://blocked.example/", ["api.github.com"], False)
    assert ok is False
    assert "not in the allowed hosts list" in reason


def test_check_host_no_subdomain_or_wildcard_matching():
    assert check_host("https://sub.api.github.com/", ["api.github.com"], False)[0] is False
    assert check_host("https://github.com/", ["api.github.com"], False)[0] is False
    assert check_host("https://api.github.com/", ["*.github.com"], False)[0] is False


def test_check_host_allow_all_and_port_ignored():
    assert check_host("http://anything.internal:8080/x", [], True) == (True, "")
    assert check_host("http://api.github.com:8443/x", ["api.github.com"], False)[0] is True


def test_check_host_empty_allowlist_denies():
    assert check_host("https://api.github.com/", [], False)[0] is False


@pytest.mark.parametrize(
    "sql",
    ["SELECT 1", "  \n\tselect * from t", "WITH cte AS (SELECT 1) SELECT * FROM cte", "with x as (select 1) delete from t"],
)
def test_classify_statement_read_only_prefixes(sql):
    assert classify_statement(sql) is StatementClass.READ_ONLY


@pytest.mark.parametrize("sql", ["INSERT INTO t VALUES (1)", "UPDATE t SET x=1", "DROP TABLE X", "(SELECT 1)", ""])
def test_classify_statement_mutating(sql):
    assert classify_statement(sql) is StatementClass.MUTATING


def test_blocked_keywords_whole_word_anywhere():
    assert find_blocked_keyword("DROP TABLE X") == "DROP"
    assert find_blocked_keyword("select 1; truncate table t") == "TRUNCATE"
    assert find_blocked_keyword("SELECT 'exec' AS s") == "EXEC"
    assert find_blocked_keyword("SELECT 1 -- create later") == "CREATE"
    assert find_blocked_keyword("EXECUTE dbo.Thing") in ("EXEC", "EXECUTE")
    assert contains_blocked_keyword("alter table t add c int")


def test_blocked_keywords_not_matched_inside_words():
    assert find_blocked_keyword("SELECT dropped_at, created_by FROM audit") is None
    assert find_blocked_keyword("UPDATE t SET executed = 1") is None
    assert not contains_blocked_keyword("SELECT * FROM alterations")


def test_blocked_procedure_prefixes():
    assert find_blocked_keyword("SELECT * FROM t; sp_executesql N'x'") == "sp_executesql"
    assert find_blocked_keyword("xp_cmdshell 'dir'") == "xp_cmdshell"
    assert find_blocked_keyword("SELECT wasp_count FROM t") is None


def test_effective_timeout_clamps_to_maximum():
    assert effective_timeout(500, 30, 120) == 120
    assert effective_timeout(None, 30, 120) == 30
    assert effective_timeout(10, 30, 120) == 10
    assert effective_timeout(None, 300, 120) == 120
