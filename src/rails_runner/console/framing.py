"""Delimiter framing for console scripts and their output."""

from __future__ import annotations

import re
import uuid

from rails_runner.console.types import ERROR_PREFIX
from rails_runner.errors import NoDelimiterFoundError

DELIMITER_PREFIX = "===RAILS_OUTPUT_DELIMITER_"
DELIMITER_SUFFIX = "==="
ANY_DELIMITER_RE = re.compile(re.escape(DELIMITER_PREFIX) + r"[a-z0-9]+" + re.escape(DELIMITER_SUFFIX) + r" *")
SNIPPET_TAG_PREFIX = "RR_SNIPPET_"

# The snippet is evaluated from a quoted heredoc so that syntax and load errors are
# raised inside the rescue. Kernel.exit! ends the process before irb can print the
# value of the block or treat ``exit`` as its own command.
_SCRIPT_TEMPLATE = """\
begin
  __rr_result = eval(<<'{tag}', binding, "(snippet)", 1)
{source}
{tag}
  $stdout.puts "{delimiter}"
  $stdout.puts __rr_result.inspect
  $stdout.flush
  Kernel.exit!(0)
rescue StandardError, ScriptError => e
  $stdout.puts "{delimiter}"
  $stdout.puts "{error_prefix}#{{e.message}}"
  $stdout.flush
  Kernel.exit!(1)
end
"""


class OutputFramer:
    """Embed a per-call delimiter into a console script and find it again in the output."""

    def new_delimiter(self) -> str:
        return f"{DELIMITER_PREFIX}{uuid.uuid4().hex}{DELIMITER_SUFFIX}"

    def wrap(self, source_code: str, delimiter: str) -> str:
        """Build the script sent to the console on stdin.

        The script traps every ``StandardError`` and ``ScriptError`` raised by the
        snippet, parse errors included. Both branches print the delimiter first, then
        either the inspected value or an ``Error:`` line, and exit right away: 0 on
        success, 1 on error.
        """
        tag = SNIPPET_TAG_PREFIX + re.sub(r"\W", "", delimiter.removeprefix(DELIMITER_PREFIX))
        return _SCRIPT_TEMPLATE.format(
            source=source_code.strip(),
            tag=tag,
            delimiter=delimiter,
            error_prefix=ERROR_PREFIX,
        )

    def extract_segment(self, raw_output: str, delimiter: str | None = None) -> str:
        """Return the text after the last delimiter occurrence.

        Echoed input can contain the delimiter too, which is why only the last
        occurrence counts. Without an explicit delimiter any token of the framer's
        shape is accepted.
        """
        if delimiter is not None:
            index = raw_output.rfind(delimiter)
            if index < 0:
                raise NoDelimiterFoundError("Delimiter not found in console output")
            return raw_output[index + len(delimiter) :]

        matches = list(ANY_DELIMITER_RE.finditer(raw_output))
        if not matches:
            raise NoDelimiterFoundError("Delimiter not found in console output")
        return raw_output[matches[-1].end() :]

    def scrub(self, text: str, delimiter: str) -> str:
        """Remove the delimiter token from text meant for humans."""
        return text.replace(delimiter, "").strip()
