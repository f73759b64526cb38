"""Default content generator backed by an OpenRouter chat model."""

import json
import logging
from typing import Any, Dict

from briefwise.clients.openrouter import OpenRouterClient
from briefwise.core.interfaces import ContentGenerator
from briefwise.core.matching import build_allocation_context
from briefwise.models.content import Newsletter
from briefwise.models.orchestration import GenerationParams, GenerationResult

logger = logging.getLogger(__name__)

NEWSLETTER_PROMPT = """You are the editor of an AI-focused newsletter. Write one issue covering the topics below, with one section per audience.

TOPICS:
{topics}

AUDIENCES:
{audiences}

STYLE:
- Tone: {tone}
- Flavors: {flavors}
- Persona: {persona}
{prompt_of_the_day}
{allocation_context}

CITATION RULES:
- Every claim must link to one of the sources assigned to that audience using <a href="URL">text</a>.
- Do not cite any URL that is not assigned to the section's audience.
- List the cited sources again in the section's "sources" array.

Respond with ONLY a JSON object of this shape:
{{
  "subject": "email subject line",
  "editors_note": "short opening note",
  "audience_sections": [
    {{
      "audience_id": "id from AUDIENCES",
      "audience_name": "name from AUDIENCES",
      "title": "section headline",
      "content": "HTML body with inline links",
      "sources": [{{"url": "https://...", "title": "source title"}}]
    }}
  ],
  "conclusion": "closing paragraph"
}}"""


class OpenRouterNewsletterGenerator(ContentGenerator):
    """Generates a newsletter with a single model call."""

    def __init__(self, client: OpenRouterClient, max_tokens: int = 4000, temperature: float = 0.7):
        self.client = client
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_prompt(self, params: GenerationParams) -> str:
        audiences = "\n".join(
            f"- {a.id}: {a.name}" + (f" ({a.description})" if a.description else "")
            for a in params.audiences
        )
        potd = (
            f"- Prompt of the day to feature: {params.prompt_of_the_day}"
            if params.prompt_of_the_day
            else ""
        )
        context = (
            build_allocation_context(params.source_allocations)
            if params.source_allocations
            else ""
        )

        return NEWSLETTER_PROMPT.format(
            topics="\n".join(f"- {topic}" for topic in params.topics),
            audiences=audiences or "- general: General readers",
            tone=params.tone or "informative",
            flavors=", ".join(params.flavors) or "none",
            persona=params.persona_id or "default editor",
            prompt_of_the_day=potd,
            allocation_context=context,
        )

    async def generate_enhanced_newsletter(
        self, params: GenerationParams
    ) -> GenerationResult:
        prompt = self.build_prompt(params)
        logger.debug(f"Newsletter prompt is {len(prompt)} characters")

        response = await self.client.generate_text(
            prompt, max_tokens=self.max_tokens, temperature=self.temperature
        )
        if not response:
            return GenerationResult(success=False, error="No response from language model")

        try:
            newsletter = Newsletter.model_validate(self.parse_response(response))
        except ValueError as e:
            # pydantic's ValidationError is a ValueError subclass
            logger.error(f"Could not parse generated newsletter: {e}")
            return GenerationResult(success=False, error=f"Invalid newsletter response: {e}")

        if not newsletter.audience_sections:
            return GenerationResult(
                success=False, error="Generated newsletter has no audience sections"
            )

        logger.info(
            f"Generated newsletter '{newsletter.subject}' with "
            f"{len(newsletter.audience_sections)} sections"
        )
        return GenerationResult(success=True, newsletter=newsletter)

    @staticmethod
    def parse_response(response: str) -> Dict[str, Any]:
        """Extract the JSON object from a model reply.

        Raises:
            ValueError: If no JSON object can be decoded
        """
        start_idx = response.find("{")
        end_idx = response.rfind("}") + 1
        if start_idx == -1 or end_idx == 0:
            raise ValueError("No JSON block found in response")

        try:
            parsed = json.loads(response[start_idx:end_idx])
        except json.JSONDecodeError as e:
            logger.debug(f"Raw response: {response}")
            raise ValueError(f"Invalid JSON response: {e}") from e

        if not isinstance(parsed, dict):
            raise ValueError("Response JSON is not an object")
        return parsed
