"""IdeaBox Application Package — feedback boards, post merging, GitHub issue sync.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
