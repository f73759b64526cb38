"""Interfaces for the collaborators the orchestrator depends on."""

from abc import ABC, abstractmethod

from briefwise.models.orchestration import (
    GenerationParams,
    GenerationResult,
    PreGenerationParams,
    PreGenerationResult,
)


class PreGenerationPipeline(ABC):
    """Validates topics and allocates sources before generation runs."""

    @abstractmethod
    async def run_pre_generation_checks(
        self, params: PreGenerationParams
    ) -> PreGenerationResult:
        """
        Decide whether generation may proceed and allocate sources.

        Args:
            params: Topics, audiences and check toggles

        Returns:
            PreGenerationResult with the block/proceed decision
        """
        pass


class ContentGenerator(ABC):
    """Produces a newsletter from topics, audiences and allocated sources."""

    @abstractmethod
    async def generate_enhanced_newsletter(
        self, params: GenerationParams
    ) -> GenerationResult:
        """
        Generate a newsletter.

        Args:
            params: Generation inputs including source allocations

        Returns:
            GenerationResult carrying either a newsletter or an error
        """
        pass
