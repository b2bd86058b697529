"""Offline embedding provider — vocabulary and text-statistics features.

No model download, no network, fully deterministic. Quality is far below
a neural model, but it lets the whole build → snapshot → query loop run
on a laptop or in CI without credentials.

Layout of the 512 dimensions:

* 0-3: word count, unique words, vocabulary richness, mean word length
* 4-50: infrastructure/tooling term frequencies
* 51-100: language and framework term frequencies
* 101-200: cloud resource term frequencies
* 201-300: configuration and deployment term frequencies
* 300-304: sentence, code block, YAML block, character and line counts
* 305+: word hashes, then scaled echoes of the features above
"""

from __future__ import annotations

import logging
import re

import numpy as np

from docembed.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_DIM = 512

_WORD = re.compile(r"[a-z0-9_-]+")

_TECHNICAL_TERMS = [
    "docker", "kubernetes", "aws", "gcp", "azure", "cloud", "container", "deployment",
    "yaml", "json", "config", "template", "resource", "stack", "service", "api",
    "database", "postgres", "mysql", "mongodb", "redis", "elasticsearch", "kafka",
    "nginx", "apache", "caddy", "traefik", "ingress", "load", "balancer",
    "terraform", "pulumi", "ansible", "helm", "kustomize", "gitops", "ci", "cd",
    "monitoring", "logging", "prometheus", "grafana", "jaeger", "zipkin", "alert",
    "security", "tls", "ssl", "oauth", "jwt", "rbac", "policy", "firewall",
]

_LANGUAGE_TERMS = [
    "javascript", "typescript", "nodejs", "npm", "yarn", "react", "vue", "angular",
    "python", "pip", "django", "flask", "fastapi", "pandas", "numpy", "pytorch",
    "java", "maven", "gradle", "spring", "hibernate", "junit", "scala", "kotlin",
    "go", "golang", "gin", "echo", "fiber", "gorm", "cobra", "viper",
    "rust", "cargo", "tokio", "serde", "diesel", "actix", "warp", "rocket",
    "php", "composer", "laravel", "symfony", "wordpress", "magento", "drupal",
    "ruby", "rails", "sinatra", "rspec", "bundler", "rake", "sidekiq",
]

_INFRA_TERMS = [
    "server", "cluster", "node", "pod", "namespace", "volume", "storage",
    "network", "subnet", "vpc", "firewall", "gateway", "proxy", "cdn",
    "lambda", "function", "serverless", "fargate", "ecs", "eks", "gke",
    "s3", "bucket", "rds", "dynamodb", "cloudformation", "cloudwatch",
    "instance", "vm", "container", "image", "registry", "artifact",
    "backup", "snapshot", "restore", "migration", "scaling", "autoscaling",
    "availability", "zone", "region", "latency", "throughput", "performance",
]

_CONFIG_TERMS = [
    "environment", "staging", "production", "development", "test", "dev", "prod",
    "configuration", "config", "env", "variable", "secret", "key", "value",
    "port", "host", "url", "endpoint", "path", "route", "domain", "subdomain",
    "version", "tag", "branch", "commit", "release", "deploy", "rollback",
    "health", "check", "status", "ready", "live", "uptime", "metric", "log",
]

# (first dimension, vocabulary)
_TERM_BLOCKS = [
    (4, _TECHNICAL_TERMS),
    (51, _LANGUAGE_TERMS),
    (101, _INFRA_TERMS),
    (201, _CONFIG_TERMS),
]

_MASK64 = (1 << 64) - 1


def _string_hash(s: str) -> int:
    """Polynomial hash with 64-bit signed wraparound, returned non-negative."""
    h = 0
    for ch in s:
        h = (h * 31 + ord(ch)) & _MASK64
    if h >= 1 << 63:
        h -= 1 << 64
    return abs(h)


class LocalEmbeddingProvider(EmbeddingProvider):
    """Deterministic bag-of-features embeddings computed in-process."""

    def __init__(self, dimension: int = DEFAULT_DIM, model: str = "local-vocabulary"):
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.model = model
        self._dim = dimension

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self._vectorize(t).tolist() for t in texts]

    def embed_query(self, query: str) -> list[float]:
        return self._vectorize(query).tolist()

    @property
    def dimension(self) -> int:
        return self._dim

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _vectorize(self, text: str) -> np.ndarray:
        dim = self._dim
        vec = np.zeros(dim, dtype=np.float32)
        words = _WORD.findall(text.lower())
        if not words:
            return vec

        total = len(words)
        unique = len(set(words))
        base = [
            total / 1000.0,
            unique / 500.0,
            unique / total,
            (sum(len(w) for w in words) / total) / 20.0,
        ]
        for i, value in enumerate(base[:dim]):
            vec[i] = value

        for start, terms in _TERM_BLOCKS:
            for i, term in enumerate(terms):
                if start + i >= dim:
                    break
                vec[start + i] = sum(1 for w in words if term in w) / total

        if dim > 300:
            sentences = text.count(".") + text.count("!") + text.count("?")
            yaml_blocks = text.count("```yaml") + text.count("```yml")
            stats = [
                sentences / 100.0,
                text.count("```") / 20.0,
                yaml_blocks / 10.0,
                len(text) / 10000.0,
                text.count("\n") / 500.0,
            ]
            for i, value in enumerate(stats):
                if 300 + i < dim:
                    vec[300 + i] = value

            for i in range(305, dim):
                if i < total:
                    vec[i] = (_string_hash(words[i % total]) % 1000) / 1000.0
                else:
                    vec[i] = vec[i % 300] * 0.1

        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return vec
