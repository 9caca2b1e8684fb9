"""
sensorlog Setup Script

For development installation:
    pip install -e .

For distribution:
    python setup.py sdist bdist_wheel
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="sensorlog",
    version="1.0.0",
    author="sensorlog Contributors",
    author_email="",
    description="Hardware sensor telemetry collector for lm-sensors/hwmon chips",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Monitoring",
        "Topic :: System :: Hardware",
    ],
    packages=find_packages(include=["sensorlog", "sensorlog.*"]),
    python_requires=">=3.9",
    install_requires=[
        "psutil>=5.9.0",
        "PyYAML>=6.0",
        "platformdirs>=4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sensorlog=sensorlog.sensors_logger:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
