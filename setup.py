from setuptools import setup, find_packages

setup(
    name             = 'defndr-core',
    version          = '1.0.0',
    description      = 'Defndr — On-device SMS spam scoring core · preprocessing, hybrid signals, health monitoring',
    author           = 'Dro1d Labs',
    packages         = find_packages(exclude=['tests*']),
    install_requires = open('requirements.txt').read().splitlines(),
    extras_require   = {
        'test': ['pytest>=7.0'],
    },
    python_requires  = '>=3.10',
    classifiers      = [
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
)
