import os
import sys

# Make the top-level modules importable without installing the project
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)
