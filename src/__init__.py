"""
MedRep - Digital Medical Representative RAG Service

Answers healthcare professionals' questions on drug approval, safety and
reimbursement with per-claim citations to verified Indian sources.

Features:
- Keyword query classification into document categories
- Parallel hybrid (dense + sparse) search across resolved collections
- Degraded general-knowledge answers when no evidence is found
- PII redaction on queries and answers
"""

__version__ = "0.1.0"
__author__ = "MedRep Team"
