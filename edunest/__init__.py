"""
EduNest Search

Query intent resolution and ranking for a student's educational materials.

Philosophy:
- Classification is total: every query yields an intent, never an error
- Overdue work outranks everything else
- Store outages degrade to empty, flagged results instead of exceptions

Usage:
    from edunest.common import load_config, Material
    from edunest.retriever import IntentClassifier, build_filters, RankingEngine
    from edunest.retriever import Searcher, InMemoryRecordStore
"""

__version__ = "0.1.0"
