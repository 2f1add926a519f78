from setuptools import setup, find_packages


setup(
    name="arstream",
    version="0.1",
    packages=find_packages(),
    description="Streaming reader and writer for Unix ar archives (the .deb container).",
    author="vercingetorx",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "arstream=arstream.cli:main",
        ]
    },
)
