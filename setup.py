"""Setup script for the Flockwave tube package."""

from setuptools import setup, find_namespace_packages

requires = ["trio>=0.23", "click>=6.2"]

__version__ = None
exec(open("src/flockwave/tube/version.py").read())

setup(
    name="flockwave-tube",
    version=__version__,
    author="Tam\u00e1s Nepusz",
    author_email="tamas@collmot.com",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["flockwave.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=requires,
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["tube-remote = flockwave.tube.cli:tube_remote"]
    },
)
