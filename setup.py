# setup.py
from setuptools import setup, find_packages

setup(
    name="factor_tuning",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "scipy",
        "scikit-learn",
        "optuna",
        "rich",
        "PyYAML"
    ],
    extras_require={
        "test": ["pytest", "hypothesis"]
    },
    entry_points={
        "console_scripts": [
            "factor-tuning=factor_tuning.cli.__main__:main"
        ]
    },
)
