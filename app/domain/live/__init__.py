"""
Live queue domain logic.

Includes:
- session: Reviewer live sessions (go live, end, discovery, capacity accounting).
- queue: Applicant queue entries (admission, advancement, turn outcomes, expiry sweep).
"""
