"""
classifiers.py
Rules-based classifiers for AI Overview citations: Content Type (page level) and
Source Name (domain level).
"""
import logging
import os
import re

import yaml

LIST_PATTERN = re.compile(r"\d+\s+(best|top|ways|tips|things)")
TLD_SUFFIX_PATTERN = re.compile(r"\.(com|org|net|io|co|edu|gov).*$")


class CitationClassifier:
    # Checked in order; the first matching rule wins.
    RULES = [
        ("guide", ["/guide", "how to", "step-by-step"]),
        ("article", ["/blog", "article", "/post"]),
        ("review", ["review", "comparison", " vs "]),
        ("faq", ["faq", "question", "answer"]),
        ("list", ["list"]),
        ("product", ["/product", "/shop", "buy"]),
        ("definition", ["definition", "what is", "meaning"]),
        ("news", ["news", "/press", "announcement"]),
    ]

    def classify(self, url, title, text):
        """
        Classifies a cited page from its URL, title and cited text.
        Returns: (content_type or None, evidence_list)
        """
        combined = " ".join(
            part if isinstance(part, str) else "" for part in (url, title, text)
        ).lower()

        for content_type, patterns in self.RULES:
            matches = [p for p in patterns if p in combined]
            if matches:
                return content_type, [f"pattern:{m.strip()}" for m in matches]
            # Counted superlatives ("7 best ...") rank with the list rule
            if content_type == "list" and LIST_PATTERN.search(combined):
                return "list", ["counted_list_wording"]

        return None, ["unclassified"]

    def detect_content_type(self, url, title, text):
        content_type, _ = self.classify(url, title, text)
        return content_type


class SourceNamer:
    def __init__(self, override_file="source_overrides.yml"):
        self.overrides = {}
        if override_file and os.path.exists(override_file):
            try:
                with open(override_file, "r") as f:
                    self.overrides = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logging.warning(f"Could not load source name overrides: {e}")
        if not isinstance(self.overrides, dict):
            logging.warning("Source name overrides must be a mapping; ignoring file.")
            self.overrides = {}

    def name(self, domain, upstream_label=None):
        """
        Display name for a citation source.
        Upstream label > manual override > name derived from the domain.
        """
        if upstream_label:
            return upstream_label
        domain = (domain or "").lower()
        if domain.startswith("www."):
            domain = domain[4:]
        if domain in self.overrides:
            return str(self.overrides[domain])
        return self.derive_name(domain)

    @staticmethod
    def derive_name(domain):
        """'www.forbes.com' -> 'Forbes', 'bbc.co.uk' -> 'Bbc'."""
        clean = re.sub(r"^www\.", "", domain or "")
        clean = TLD_SUFFIX_PATTERN.sub("", clean)
        return clean[:1].upper() + clean[1:]
