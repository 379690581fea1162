"""Prompt compilation for synthesis attempts."""

from .compiler import SYSTEM_PROMPT, compile_prompt, render_user_prompt, schema_name
from .types import SynthesisRequest

__all__ = ["SYSTEM_PROMPT", "SynthesisRequest", "compile_prompt", "render_user_prompt", "schema_name"]
