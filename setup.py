# setup.py
from setuptools import setup, find_packages

setup(
    name="resourcecounter",
    version="0.1.0",
    description="Optimistic concurrency demo: lost updates vs conditional writes on DynamoDB",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "typer>=0.9.0",
        "pydantic>=2.0",
        "rich>=10.0.0",
        "tomli>=1.1.0",
        "boto3>=1.26.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
            "moto[dynamodb]>=5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rescount=resourcecounter.main:main",
        ],
    },
)
