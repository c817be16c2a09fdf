from setuptools import setup, find_packages

setup(
    name="cooklang_parser",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"cooklang_parser.parser": ["*.peg"]},
    description="A parser for the Cooklang recipe markup language.",
    install_requires=["peggie>=0.2.0"],
    extras_require={"test": ["pytest"]},
)
