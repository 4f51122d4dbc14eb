"""
Hybrid retrieval: BM25 keyword scoring and the ranking pipeline.
"""

from neurostore.retrieval.bm25 import BM25Scorer
from neurostore.retrieval.pipeline import RetrievalPipeline, recency_term

__all__ = ['BM25Scorer', 'RetrievalPipeline', 'recency_term']
