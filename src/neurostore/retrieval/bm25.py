"""
BM25 keyword scoring over a supplied candidate set.

Document frequency and average length are computed from the candidates
alone, not the whole corpus, so the keyword channel is local to each query's
vector shortlist.

Documentation references:
- Okapi BM25: https://en.wikipedia.org/wiki/Okapi_BM25
"""

import math
from collections import Counter
from typing import Dict, List, Sequence, Tuple

from neurostore.utils.text import tokenize


class BM25Scorer:
    """
    Okapi BM25 with the usual parameters.

    Args:
        k1: Term frequency saturation
        b: Document length normalization factor
    """

    def __init__(self, k1: float = 1.2, b: float = 0.75):
        self.k1 = k1
        self.b = b

    def score(self, query: str, documents: Sequence[Tuple[str, str]]) -> Dict[str, float]:
        """
        Score each ``(doc_id, content)`` pair against ``query``.

        Returns:
            Mapping of doc_id to a non-negative score; 0.0 when nothing overlaps
        """
        if not documents:
            return {}

        query_terms = list(dict.fromkeys(tokenize(query)))
        doc_tokens: List[List[str]] = [tokenize(content) for _, content in documents]
        scores = {doc_id: 0.0 for doc_id, _ in documents}
        if not query_terms:
            return scores

        n_docs = len(documents)
        avg_len = sum(len(tokens) for tokens in doc_tokens) / n_docs
        doc_freq = Counter()
        for tokens in doc_tokens:
            doc_freq.update(set(tokens))

        for (doc_id, _), tokens in zip(documents, doc_tokens):
            if not tokens:
                continue
            term_freq = Counter(tokens)
            length_norm = 1 - self.b + self.b * (len(tokens) / avg_len if avg_len else 0.0)
            total = 0.0
            for term in query_terms:
                tf = term_freq.get(term, 0)
                if tf == 0:
                    continue
                df = doc_freq[term]
                idf = math.log((n_docs - df + 0.5) / (df + 0.5) + 1.0)
                total += idf * (tf * (self.k1 + 1)) / (tf + self.k1 * length_norm)
            scores[doc_id] = total

        return scores
