import re
from setuptools import setup, find_packages

# Read version from tri_sync/__init__.py
with open("tri_sync/__init__.py") as f:
    version = re.search(r'__version__\s*=\s*"(.+?)"', f.read()).group(1)

setup(
    name="tri_sync",
    version=version,
    description="Cross-panel selection synchronization engine for bitstream analysis views",
    packages=find_packages(include=["tri_sync", "tri_sync.*"]),
    python_requires=">=3.8",
    install_requires=[
        "PySide6",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'tri_sync=tri_sync.main:main',
        ],
    },
)
