"""
Checker package.

Evaluates submissions against underwriting appetite: decision lookup via a
pluggable RuleMatcher, confidence scoring from the business description,
product eligibility checks and the append-only submission log.
"""
