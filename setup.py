from setuptools import setup


setup(
    name="ads-ingest",
    version="0.3.0",
    description="Classify and ingest advertising and sales report exports (CSV, Excel, zip) into a daily ledger and report store",
    packages=["ads_ingest"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ads-ingest=ads_ingest.cli:main",
        ]
    },
)
