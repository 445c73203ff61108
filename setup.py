"""Setup script for locfix package."""

from setuptools import setup, find_packages

setup(
    name="locfix",
    version="0.1.0",
    description="Best-effort GPS fix acquisition with reverse geocoding for Meshtastic devices",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "meshtastic": [
            "meshtastic>=2.3.0",
            "pypubsub>=4.0.3",
            "pyserial>=3.5",
            "protobuf>=4.25.0",
        ],
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "locfix=locfix.main:main",
        ],
    },
)
