from setuptools import setup

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='latex2ast',
    version='0.0.1',
    packages=['latex2ast', 'latex2ast.test'],
    scripts=[],
    description='Parser for LaTeX-flavored math notation, with a canonical serializer',
    long_description=long_description,
    long_description_content_type="text/markdown",
    include_package_data=True,
    entry_points={
        'console_scripts': [
            'latex2ast = latex2ast.main:CommandLine',
            ],
        },
    install_requires=['pyparsing>=3.0',
                      'numpy',
                      'lxml',
                      'path',
                      ],
    extras_require={
        'test': ['pytest'],
    },
)
