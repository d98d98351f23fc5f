from setuptools import setup, find_packages
import pathlib

# Detect layout
use_src = pathlib.Path("src/sheetmerge").exists()
pkg_args = {"package_dir": {"": "src"}, "packages": find_packages(where="src")} if use_src \
           else {"packages": find_packages(where=".")}

setup(
    name="sheet-merge",
    version="0.1.0",
    include_package_data=True,
    package_data={"sheetmerge": ["templates/*.j2"]},
    python_requires=">=3.10",
    install_requires=[
        "typer",
        "PyYAML",
        "Jinja2",
        "pandas",
        "openpyxl",
        "requests",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["sheet-merge=sheetmerge.cli:main"]},
    **pkg_args
)
