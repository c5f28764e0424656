"""
External service clients for the deal analysis pipeline.
"""

from .openai_client import OpenAIClient
from .postgres_client import PostgresClient
from .standards_client import StandardsClient

__all__ = [
    'OpenAIClient',
    'PostgresClient',
    'StandardsClient',
]
