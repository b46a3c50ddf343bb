"""
AI services package.

The generative model is used strictly to rewrite and expand search queries
and to propose research topics. Retrieval, deduplication and caching live
in podsearch.services.search; nothing here talks to the search provider.
"""
