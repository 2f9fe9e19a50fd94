from setuptools import setup


setup(
    name="acordos",
    version="0.3.0",
    description="Debt-collection agreement tracking from messy spreadsheet exports",
    packages=["acordos"],
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "acordos=acordos.cli:main",
        ]
    },
)
