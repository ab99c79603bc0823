"""Run orchestration: single-flight runner, draft assembly and the generation run."""

from .assembler import DraftAssembler
from .generation import GenerationPipeline, GenerationResult, TopicOutcome
from .runner import JobRunner, RunStatus

__all__ = [
    'DraftAssembler',
    'GenerationPipeline',
    'GenerationResult',
    'TopicOutcome',
    'JobRunner',
    'RunStatus',
]
