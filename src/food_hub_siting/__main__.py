"""Entry point: python -m food_hub_siting"""
import sys

from .cli import main

sys.exit(main())
