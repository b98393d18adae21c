# tests/conftest.py
"""
Pytest configuration.
Adds backend/ to sys.path so `import pte_scoring` works without installing.
"""

import os
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
backend_root = project_root / "backend"
if str(backend_root) not in sys.path:
	sys.path.insert(0, str(backend_root))

# Keep real credentials from a developer .env out of the test run
for _var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "OPENROUTER_API_KEY", "PTE_SCORING_PROVIDER_PRIORITY"):
	os.environ.pop(_var, None)
