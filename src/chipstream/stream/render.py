"""Plain-text renderings of a stream state for display and debugging."""

from __future__ import annotations

import json
from typing import Any

from chipstream.stream.state import StreamState
from chipstream.stream.text import truncate

SUMMARY_PROMPT_CHARS = 150


def _code_section(title: str, lines: list[str]) -> str:
    body = "".join(f"{line}\n" for line in lines)
    return f"\n\n---\n### {title}:\n```\n{body}```\n"


def render_formatted_output(
    state: StreamState, prompt_chars: int = SUMMARY_PROMPT_CHARS
) -> str:
    """Assistant text followed by tool activity and a tools summary."""
    output = state.assistant_text

    if state.tool_activity:
        output += _code_section("🔧 Tool Activity Log", state.tool_activity)

    if state.web_search_activity:
        output += _code_section(
            "🌐 Web Search Activity (Detailed)", state.web_search_activity
        )

    if state.tool_uses:
        output += "\n\n---\n### 📋 Tools Summary:\n"
        for idx, tool in enumerate(state.tool_uses, start=1):
            output += f"\n**{idx}. {tool.name}** (ID: {tool.id})\n"
            if not isinstance(tool.input, dict):
                continue
            query = tool.input.get("query")
            url = tool.input.get("url")
            prompt = tool.input.get("prompt")
            if query:
                output += f'   - Query: "{query}"\n'
            if url:
                output += f"   - URL: {url}\n"
            if prompt:
                output += f'   - Prompt: "{truncate(str(prompt), prompt_chars)}"\n'

    return output


def format_results(parsed: Any) -> str:
    """Render a replay result, preferring its precomputed formatted output."""
    formatted = getattr(parsed, "formatted_output", "")
    if formatted:
        return formatted

    lines: list[str] = []
    if parsed.assistant_text:
        lines.append(parsed.assistant_text)

    if parsed.tool_uses:
        lines.append("\n\n---\n### 🔧 Tools Used:\n")
        for idx, tool in enumerate(parsed.tool_uses, start=1):
            lines.append(f"**{idx}. {tool.name}**")
            if isinstance(tool.input, dict):
                for key, value in tool.input.items():
                    lines.append(f"   - {key}: {json.dumps(value, ensure_ascii=False)}")
            elif tool.input:
                lines.append(f"   - Input: {tool.input}")

    return "\n".join(lines)
