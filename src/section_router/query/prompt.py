"""Mode-specific prompts for document queries."""

from __future__ import annotations

from section_router.config import QueryConfig

MODE_ANSWER = "answer"
MODE_SUMMARIZE = "summarize"
MODE_EXTRACT = "extract"
QUERY_MODES = (MODE_ANSWER, MODE_SUMMARIZE, MODE_EXTRACT)

_CONCISE_INSTRUCTION = (
    "Be EXTREMELY concise. 10-20 lines max. No preamble. No repeating the question.\n\n"
)

_SUMMARIZE_INSTRUCTION = """
Provide a structural overview of the file(s):
- List key types, functions, and their purposes (one line each)
- Note important constants, interfaces, and exported symbols
- Identify the main responsibility/pattern of each file
- Skip imports, boilerplate, and obvious details

""".lstrip()


def build_query_prompt(
    question: str,
    files: dict[str, str],
    mode: str,
    config: QueryConfig | None = None,
) -> str:
    """Render a prompt holding line-numbered file contents.

    Files longer than `max_file_lines` are cut down to their first
    `head_lines` and last `tail_lines` lines around an omission marker.
    """

    config = config or QueryConfig()
    parts: list[str] = [_CONCISE_INSTRUCTION]

    if mode == MODE_SUMMARIZE:
        parts.append(_SUMMARIZE_INSTRUCTION)
    elif mode == MODE_EXTRACT:
        if question:
            parts.append(
                f"Extract the specific code snippets relevant to: {question}\n"
                "- Include only the directly relevant lines with path:line_number prefixes\n"
                "- Add minimal context (1-2 lines) around each snippet\n"
                "- Omit everything else\n\n"
            )
    else:
        if question:
            parts.append(f"Question: {question}\n\n")
        parts.append("Answer based on the file content below. Cite specific lines as path:N.\n\n")

    for path, content in files.items():
        lines = content.split("\n")
        total = len(lines)
        parts.append(f"--- {path} ({total} lines) ---\n")

        if total > config.max_file_lines:
            tail_start = total - config.tail_lines
            parts.extend(_numbered(path, lines[: config.head_lines], start=1))
            omitted = total - config.head_lines - config.tail_lines
            parts.append(f"\n[... {omitted} lines omitted ...]\n\n")
            parts.extend(_numbered(path, lines[tail_start:], start=tail_start + 1))
        else:
            parts.extend(_numbered(path, lines, start=1))
        parts.append("\n")

    return "".join(parts)


def _numbered(path: str, lines: list[str], *, start: int) -> list[str]:
    return [f"{path}:{number}\t{line}\n" for number, line in enumerate(lines, start=start)]
