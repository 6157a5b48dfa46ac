"""
Selfstudy: the self-study course player engine.

Subpackages:
- content/: course manifests, module bundles, page models and loading
- pages/: page type handlers (entry signals and pass/fail evaluation)
- player/: attempt state, persistence, quizzes, gating and delivery
- cli/: terminal player
"""

__version__ = "1.0.0"
