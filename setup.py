from setuptools import setup, find_packages

setup(
    name="questreminders",
    version="0.1.0",
    packages=find_packages(),
    install_requires=[
        "celery",
        "firebase-admin>=6.2",
        "prometheus-client",
        "pydantic",
        "pydantic-settings",
        "tzdata",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
