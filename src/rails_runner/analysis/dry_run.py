"""Preview the effect of a mutating snippet inside a rolled-back transaction."""

from __future__ import annotations

import re
from dataclasses import dataclass

from loguru import logger

from rails_runner.console.client import RailsConsoleClient

WRITE_STATEMENT_RE = re.compile(r"^\s*(INSERT|UPDATE|DELETE)\b", re.IGNORECASE)
TABLE_RE = re.compile(
    r"^\s*(?:INSERT\s+INTO|UPDATE|DELETE\s+FROM)\s+[`\"\[]?(?:[\w]+[`\"\]]?\.[`\"\[]?)?([\w]+)",
    re.IGNORECASE,
)

_DRY_RUN_TEMPLATE = """\
__rr_statements = []
__rr_subscriber = ActiveSupport::Notifications.subscribe("sql.active_record") do |*, payload|
  __rr_sql = payload[:sql].to_s
  __rr_statements << __rr_sql if __rr_sql.match?(/\\A\\s*(INSERT|UPDATE|DELETE)\\b/i)
end
__rr_value = nil
begin
  ActiveRecord::Base.transaction do
    __rr_value = begin
{code}
    end
    raise ActiveRecord::Rollback
  end
ensure
  ActiveSupport::Notifications.unsubscribe(__rr_subscriber)
end
JSON.generate("result" => __rr_value.inspect, "statements" => __rr_statements)
"""


@dataclass(frozen=True)
class MutationAnalysis:
    """What a snippet would have done, captured before the rollback."""

    result: str
    statements: tuple[str, ...]
    captured: bool = True

    @property
    def affected_tables(self) -> tuple[str, ...]:
        tables: list[str] = []
        for statement in self.statements:
            match = TABLE_RE.match(statement)
            if match and match.group(1) not in tables:
                tables.append(match.group(1))
        return tuple(tables)

    def render(self) -> str:
        if not self.captured:
            return f"Dry run output could not be analyzed:\n{self.result}"
        lines = [f"Result (rolled back): {self.result}"]
        if not self.statements:
            lines.append("No write statements were issued.")
            return "\n".join(lines)
        lines.append(f"Affected tables: {', '.join(self.affected_tables) or '(unknown)'}")
        lines.append(f"Write statements ({len(self.statements)}):")
        lines.extend(f"  {idx}. {statement}" for idx, statement in enumerate(self.statements, start=1))
        return "\n".join(lines)


def build_dry_run_script(code: str) -> str:
    return _DRY_RUN_TEMPLATE.format(code=code.strip())


class MutationAnalyzer:
    """Run snippets through the console client inside a transaction that never commits."""

    def __init__(self, client: RailsConsoleClient) -> None:
        self.client = client

    async def analyze(self, code: str) -> MutationAnalysis:
        parsed = await self.client.execute(build_dry_run_script(code))
        payload = parsed.value
        if parsed.strategy != "structured" or not isinstance(payload, dict) or "statements" not in payload:
            logger.warning("dry_run.unexpected_output strategy={}", parsed.strategy)
            return MutationAnalysis(result=parsed.text, statements=(), captured=False)

        statements = tuple(
            str(statement) for statement in payload.get("statements") or [] if WRITE_STATEMENT_RE.match(str(statement))
        )
        logger.info("dry_run.done statements={}", len(statements))
        return MutationAnalysis(result=str(payload.get("result", "")), statements=statements)
