import os
import sys

# Ensure src/ is importable when tests run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))
