from setuptools import find_packages, setup

setup(
    name="ledgertail",
    version="0.1.0",
    author="ledgertail developers",
    description="ledgertail - rate-limited tailing reader for append-only fixed-record ledgers",
    long_description="ledgertail follows a ledger file written by another process and hands out "
                     "complete fixed-size records as they appear, checking the file length at most "
                     "once per poll interval.",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.20",
        "PyYAML>=5.1",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "ledgertail=ledgertail.cli:main",
        ],
    },
)
