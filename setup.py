import pathlib

from setuptools import find_packages, setup

here = pathlib.Path(__file__).parent

with (here / "README.rst").open("r", encoding="utf-8") as fo:
    long_description = fo.read()

metadatas = dict(
    name="pgslowlog",
    description="Extract slow queries from PostgreSQL logs",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    license="PostgreSQL",
    keywords="postgresql log_min_duration_statement log_line_prefix slow query",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: PostgreSQL License",
        "Programming Language :: Python :: 3",
        "Topic :: Database",
    ],
    version="0.1.0",
    install_requires=[
        "typing_extensions",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
)


if __name__ == "__main__":
    setup(
        packages=find_packages(".", exclude=["tests", "tests.*"]),
        package_data={"pgslowlog": ["py.typed"]},
        python_requires=">=3.7",
        **metadatas
    )
