"""Grouping of unique exception blocks using TF-IDF and MiniBatchKMeans."""

import re
from collections import Counter
from typing import Optional

import numpy as np
from sklearn.cluster import MiniBatchKMeans
from sklearn.feature_extraction.text import TfidfVectorizer

from .models import ExceptionBlock, BlockCluster
from .normalization import signature_of

# Tokens that appear in nearly every Java stack frame
FRAME_STOP_WORDS = [
    'at', 'java', 'javax', 'jdk', 'sun', 'lang', 'util', 'internal',
    'reflect', 'invoke', 'base', 'org', 'com', 'net', 'io', 'springframework',
    'apache', 'catalina', 'tomcat', 'core', 'impl', 'run', 'call', 'method',
    'native', 'more', 'caused', 'by', 'num', 'txxxx', 'xxxx', 'ts',
    'the', 'a', 'an', 'is', 'of', 'to', 'in', 'for', 'on', 'with',
]

TOKEN_PATTERN = r'\b[a-zA-Z_][a-zA-Z0-9_]*\b'


class BlockClusterer:
    """
    Clusters unique exception blocks by signature similarity.

    The hourly digest uses the clusters as an overview: blocks sharing
    exception types and frames end up together, with the most telling
    TF-IDF terms as keywords.
    """

    def __init__(
        self,
        max_clusters: int = 10,
        min_blocks_per_cluster: int = 2,
        max_features: int = 1000,
    ):
        """
        Initialize the clusterer.

        Args:
            max_clusters: Maximum number of clusters to create
            min_blocks_per_cluster: Blocks needed per cluster on average
            max_features: Maximum TF-IDF features to use
        """
        self.max_clusters = max_clusters
        self.min_blocks_per_cluster = min_blocks_per_cluster
        self.max_features = max_features

    def cluster(self, blocks: list[ExceptionBlock]) -> list[BlockCluster]:
        """
        Cluster blocks by the text of their signatures.

        Args:
            blocks: Unique exception blocks

        Returns:
            Clusters sorted by size, largest first
        """
        if not blocks:
            return []

        texts = [self._prepare_text(signature_of(b)) for b in blocks]

        n_clusters = min(
            self.max_clusters,
            max(1, len(blocks) // self.min_blocks_per_cluster),
        )
        if n_clusters <= 1:
            return [self._single_cluster(blocks, texts)]

        vectorizer = TfidfVectorizer(
            max_features=self.max_features,
            stop_words=FRAME_STOP_WORDS,
            ngram_range=(1, 2),
            min_df=1,
            token_pattern=TOKEN_PATTERN,
        )
        try:
            matrix = vectorizer.fit_transform(texts)
        except ValueError:
            # Nothing but stop words left
            return [self._single_cluster(blocks, texts)]
        feature_names = vectorizer.get_feature_names_out().tolist()

        kmeans = MiniBatchKMeans(
            n_clusters=n_clusters,
            random_state=42,
            batch_size=min(100, len(blocks)),
            n_init=3,
        )
        labels = kmeans.fit_predict(matrix)

        return self._build_clusters(blocks, labels, matrix, feature_names)

    def _prepare_text(self, signature: str) -> str:
        # Split dotted names so package and class names become separate terms
        text = re.sub(r'[.$()<>\[\]:]', ' ', signature)
        return re.sub(r'\s+', ' ', text).strip()

    def _single_cluster(
        self,
        blocks: list[ExceptionBlock],
        texts: list[str],
    ) -> BlockCluster:
        return BlockCluster(
            cluster_id=0,
            blocks=list(blocks),
            keywords=self._frequent_terms(texts),
            representative=self._headline(blocks[0]),
        )

    def _build_clusters(
        self,
        blocks: list[ExceptionBlock],
        labels: np.ndarray,
        matrix,
        feature_names: list[str],
    ) -> list[BlockCluster]:
        members: dict[int, list[int]] = {}
        for i, label in enumerate(labels):
            members.setdefault(int(label), []).append(i)

        clusters = []
        for label, indices in sorted(members.items()):
            scores = np.asarray(matrix[indices].mean(axis=0)).ravel()
            top = np.argsort(scores)[-10:][::-1]
            keywords = [feature_names[i] for i in top if scores[i] > 0]

            cluster_blocks = [blocks[i] for i in indices]
            clusters.append(BlockCluster(
                cluster_id=label,
                blocks=cluster_blocks,
                keywords=keywords,
                representative=self._headline(cluster_blocks[0]),
            ))

        # Largest first, earliest block breaks ties
        clusters.sort(key=lambda c: (-c.size, c.blocks[0].start_index))
        for i, cluster in enumerate(clusters):
            cluster.cluster_id = i
        return clusters

    @staticmethod
    def _frequent_terms(texts: list[str]) -> list[str]:
        counts: Counter = Counter()
        for text in texts:
            words = re.findall(TOKEN_PATTERN, text.lower())
            counts.update(w for w in words if w not in FRAME_STOP_WORDS and len(w) > 2)
        return [word for word, _ in counts.most_common(10)]

    @staticmethod
    def _headline(block: ExceptionBlock) -> str:
        """First exception line of a block, used as its short description."""
        for line in signature_of(block).splitlines():
            if 'exception' in line or 'error' in line:
                return line
        return block.lines[-1] if block.lines else ""
