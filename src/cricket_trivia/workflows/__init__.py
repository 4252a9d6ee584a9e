"""
Workflows module - Pipeline orchestration for quiz generation.
"""
from cricket_trivia.workflows.base import QuizPipeline
from cricket_trivia.workflows.fetch_controller import FetchController
from cricket_trivia.workflows.two_phase import TwoPhasePipeline
from cricket_trivia.workflows.pipeline_factory import create_pipeline, create_llm

__all__ = [
    "QuizPipeline",
    "FetchController",
    "TwoPhasePipeline",
    "create_pipeline",
    "create_llm",
]
