"""
AccessWatch - Serverless Entry Point
Exposes the FastAPI application for serverless hosting.
"""

import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.api.main import app

handler = app
