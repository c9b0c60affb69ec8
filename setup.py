from setuptools import setup, find_packages

setup(
    name='mensurlab',
    version='1.0',
    description='Acoustic input impedance of wind instrument bores (transmission-line model)',
    license='GNU GENERAL PUBLIC LICENSE v2',
    include_package_data=True,
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21",
        "configargparse>=1.5.3",
        "pandas>=1.5.0",
        "scipy>=1.9.1",
        "matplotlib>=3.6.1",
        "prettytable>=3.4.1",
        "tqdm>=4.64.1",
        "sympy>=1.11",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["mensurlab=mensurlab.app:main"],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
    ],
)
