"""
Sift - Article Triage Confidence Engine

Learns from approved and junk decisions on news articles and scores new
articles with a small persisted neural network, falling back to keyword
frequencies when no network is wanted.
"""

__version__ = "0.1.0"
__author__ = "Keith Teare"
__email__ = "keith@teare.com"
