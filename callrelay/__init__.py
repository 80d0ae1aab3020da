"""
CallRelay: Resilient Multi-Provider Conversational Dispatch

Obtains a reply for one turn of a voice or chat conversation from one of
several interchangeable language-model providers, failing over between them
and translating tool declarations, conversation history and tool results
into each provider's format.
"""

__version__ = "0.1.0"
