"""
docrag API
==========

HTTP surface for the agent: search the docs, report answer outcomes.
"""
