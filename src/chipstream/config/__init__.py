"""Configuration: Pydantic models for chipstream settings."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_RECORD_LABELS = (
    "session_init",
    "stream_event",
    "tool_use_from_stream",
    "session_complete",
    "input_json_delta",
    "tool_use",
    "tool_result",
)


class ParserConfig(BaseModel):
    """Stream reducer configuration.

    Tool names are an open set; ``search_tools`` only decides which of them
    get the detailed web-search narration trail.
    """

    search_tools: list[str] = Field(default_factory=lambda: ["WebSearch", "web_search"])
    record_labels: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RECORD_LABELS),
        description="Label lines (``label:``) that close the previous JSON record",
    )
    replay_boundaries: list[str] = Field(
        default_factory=lambda: ["stream_event", "tool_use_from_stream", "session_complete"],
        description="Substrings that end a segment when replaying a complete log",
    )
    narration_prompt_chars: int = Field(
        default=100, description="Prompt preview length in the tool activity log"
    )
    summary_prompt_chars: int = Field(
        default=150, description="Prompt preview length in the tools summary"
    )


class LogConfig(BaseModel):
    """Tool stream log writer configuration."""

    enabled: bool = Field(default=False)
    log_dir: str = Field(default="./logs", description="Directory for tool stream logs")
    max_string_length: int = Field(
        default=20_000, description="Longer strings are truncated in log payloads"
    )


class ChipStreamConfig(BaseModel):
    """Top-level chipstream configuration."""

    parser: ParserConfig = Field(default_factory=ParserConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> ChipStreamConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            CHIPSTREAM_SEARCH_TOOLS        - Comma-separated search-class tool names
            CHIPSTREAM_LOG_DIR             - Directory for tool stream logs
            CHIPSTREAM_LOG_ENABLED         - Write tool stream logs (1/true/yes)
            CHIPSTREAM_MAX_STRING_LENGTH   - Truncation limit for logged strings
        """
        # override=True so values edited in .env win over stale exported ones.
        try:
            from dotenv import load_dotenv

            load_dotenv(override=True)
        except ImportError:
            pass

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            import json

            with open(config_path) as f:
                config_data = json.load(f)

        parser = config_data.get("parser", {})
        log = config_data.get("log", {})

        env_search_tools = os.environ.get("CHIPSTREAM_SEARCH_TOOLS")
        if env_search_tools:
            parser["search_tools"] = [
                name.strip() for name in env_search_tools.split(",") if name.strip()
            ]

        env_log_dir = os.environ.get("CHIPSTREAM_LOG_DIR")
        if env_log_dir:
            log["log_dir"] = env_log_dir

        env_log_enabled = os.environ.get("CHIPSTREAM_LOG_ENABLED")
        if env_log_enabled:
            log["enabled"] = env_log_enabled.strip().lower() in ("1", "true", "yes")

        env_max_string = os.environ.get("CHIPSTREAM_MAX_STRING_LENGTH")
        if env_max_string:
            log["max_string_length"] = int(env_max_string)

        if parser:
            config_data["parser"] = parser
        if log:
            config_data["log"] = log

        return cls.model_validate(config_data)
