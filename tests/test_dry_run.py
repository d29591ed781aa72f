from collections.abc import Callable

import pytest

from rails_runner.analysis import MutationAnalysis, MutationAnalyzer, build_dry_run_script
from rails_runner.console.client import RailsConsoleClient
from rails_runner.console.types import ParsedResult


class _StubClient:
    def __init__(self, result: ParsedResult) -> None:
        self.result = result
        self.codes: list[str] = []

    async def execute(self, code: str) -> ParsedResult:
        self.codes.append(code)
        return self.result


def test_script_wraps_code_in_rolled_back_transaction() -> None:
    script = build_dry_run_script("  User.first.update!(name: 'x')\n")

    assert "ActiveRecord::Base.transaction do" in script
    assert "\nUser.first.update!(name: 'x')\n" in script
    assert "raise ActiveRecord::Rollback" in script
    assert 'subscribe("sql.active_record")' in script
    assert "ActiveSupport::Notifications.unsubscribe" in script
    assert "JSON.generate" in script
    assert r"/\A\s*(INSERT|UPDATE|DELETE)\b/i" in script


@pytest.mark.asyncio
async def test_analyzer_collects_write_statements() -> None:
    payload = {
        "result": "true",
        "statements": [
            'UPDATE "users" SET "name" = $1 WHERE "users"."id" = $2',
            'SELECT "users".* FROM "users" LIMIT 1',
            'INSERT INTO "audits" ("action") VALUES ($1)',
            'UPDATE "users" SET "updated_at" = $1',
        ],
    }
    client = _StubClient(ParsedResult(value=payload, text="{}", strategy="structured"))
    analysis = await MutationAnalyzer(client).analyze("User.first.update!(name: 'x')")  # type: ignore[arg-type]

    assert "raise ActiveRecord::Rollback" in client.codes[0]
    assert analysis.captured is True
    assert analysis.result == "true"
    assert len(analysis.statements) == 3
    assert analysis.affected_tables == ("users", "audits")

    rendered = analysis.render()
    assert "Result (rolled back): true" in rendered
    assert "Affected tables: users, audits" in rendered
    assert "Write statements (3):" in rendered


@pytest.mark.asyncio
async def test_unexpected_output_is_reported_not_raised() -> None:
    client = _StubClient(ParsedResult(value="Error: boom", text="Error: boom", strategy="text"))
    analysis = await MutationAnalyzer(client).analyze("User.delete_all")  # type: ignore[arg-type]

    assert analysis.captured is False
    assert analysis.statements == ()
    assert "could not be analyzed" in analysis.render()
    assert "Error: boom" in analysis.render()


def test_render_without_writes() -> None:
    rendered = MutationAnalysis(result="nil", statements=()).render()
    assert "No write statements were issued." in rendered


@pytest.mark.parametrize(
    ("statement", "table"),
    [
        ('INSERT INTO "users" ("email") VALUES ($1)', "users"),
        ("UPDATE `orders` SET `state` = 'paid'", "orders"),
        ('DELETE FROM "public"."sessions" WHERE "id" = 1', "sessions"),
        ("update line_items set quantity = 2", "line_items"),
    ],
)
def test_affected_tables_from_statement_shapes(statement: str, table: str) -> None:
    assert MutationAnalysis(result="", statements=(statement,)).affected_tables == (table,)


@pytest.mark.asyncio
async def test_analyzer_end_to_end_with_console(make_client: Callable[..., RailsConsoleClient], fake_console) -> None:
    body = "\n".join(
        [
            'echo "$delim"',
            """printf '%s\\n' '{"result":"#<User id: 1>","statements":["UPDATE \\"users\\" SET \\"name\\" = $1"]}'""",
        ]
    )
    client = make_client(fake_console(body))
    analysis = await MutationAnalyzer(client).analyze("User.first.update!(name: 'x')")

    assert analysis.result == "#<User id: 1>"
    assert analysis.statements == ('UPDATE "users" SET "name" = $1',)
    assert analysis.affected_tables == ("users",)
