"""Provider fetchers.

Every fetcher returns a list of normalized ``Resource`` records or raises.
"""
