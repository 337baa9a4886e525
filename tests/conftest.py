"""Configure test paths."""
import sys
from pathlib import Path

# Add src/ to path so tests can import the package, and tests/ for helpers
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))
