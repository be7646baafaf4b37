"""
AI file tools: generate, edit and analyse project files.

Thin prompt builders over the completion gateway with fixed sampling.
"""

from typing import Optional

from app.agents.prompts import (
    FILE_GENERATION_SYSTEM_PROMPT, FILE_GENERATION_PROMPT,
    FILE_EDIT_SYSTEM_PROMPT, FILE_EDIT_PROMPT,
    CODE_ANALYSIS_SYSTEM_PROMPT, CODE_ANALYSIS_PROMPT,
)
from app.config import get_settings
from app.services.completion import CompletionGateway, SamplingConfig
from app.utils.languages import language_from_filename

GENERATE_TEMPERATURE = 0.3
EDIT_TEMPERATURE = 0.2
ANALYZE_TEMPERATURE = 0.1
CODE_MAX_TOKENS = 2000
ANALYSIS_MAX_TOKENS = 1000


class FileGenerationService:
    def __init__(self, completion: CompletionGateway, model: Optional[str] = None):
        self.completion = completion
        self.model = model or get_settings().openai_default_model

    async def generate_file_content(
        self,
        description: str,
        file_name: str,
        language: Optional[str] = None,
        requirements: Optional[str] = None
    ) -> str:
        """Write a new file from a description."""
        prompt = FILE_GENERATION_PROMPT.format(
            file_name=file_name,
            language=language or language_from_filename(file_name),
            description=description,
            requirements=f"Requirements: {requirements}\n" if requirements else ""
        )
        return await self.completion.generate(
            prompt,
            FILE_GENERATION_SYSTEM_PROMPT,
            config=SamplingConfig(self.model, GENERATE_TEMPERATURE, CODE_MAX_TOKENS)
        )

    async def edit_file_content(
        self,
        file_content: str,
        edit_instructions: str,
        language: str = "javascript"
    ) -> str:
        prompt = FILE_EDIT_PROMPT.format(
            language=language,
            file_content=file_content,
            edit_instructions=edit_instructions
        )
        return await self.completion.generate(
            prompt,
            FILE_EDIT_SYSTEM_PROMPT,
            config=SamplingConfig(self.model, EDIT_TEMPERATURE, CODE_MAX_TOKENS)
        )

    async def analyze_code(self, code: str, language: str = "javascript") -> str:
        prompt = CODE_ANALYSIS_PROMPT.format(language=language, code=code)
        return await self.completion.generate(
            prompt,
            CODE_ANALYSIS_SYSTEM_PROMPT,
            config=SamplingConfig(self.model, ANALYZE_TEMPERATURE, ANALYSIS_MAX_TOKENS)
        )
