"""OpenAI client used by the AI enrichment step"""
import logging
from typing import Optional

from openai import OpenAI

from .config import LLM_MODEL, OPENAI_API_KEY

logger = logging.getLogger(__name__)


class LLMClient:
    """Client for OpenAI API exposing a plain ``generate(system, prompt)`` call"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or OPENAI_API_KEY
        if not api_key:
            raise ValueError("OPENAI_API_KEY not set in environment variables")
        self.client = OpenAI(api_key=api_key)
        self.model = model or LLM_MODEL

    def generate(self,
                 system: str,
                 prompt: str,
                 temperature: float = 0.3,
                 max_tokens: int = 300) -> str:
        """
        Run one chat completion

        Args:
            system: System instruction
            prompt: User message
            temperature: Sampling temperature
            max_tokens: Completion length limit

        Returns:
            Stripped completion text ("" when the model returned nothing)

        Raises:
            openai.OpenAIError: on API failures; callers decide how to degrade
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.warning("Empty completion from %s", self.model)
            return ""
        return content.strip()

    def __call__(self, system: str, prompt: str) -> str:
        return self.generate(system, prompt)
