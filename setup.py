from setuptools import setup, find_packages


console_scripts = [
    'workloop = workloop.cli:entry_point',
]

CLASSIFIERS = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: MIT License",
    "Operating System :: POSIX",
    "Programming Language :: Python",
    "Programming Language :: Python :: 3",
]

INSTALL_REQUIRES = [
    "pyyaml",
]

EXTRAS_REQUIRE = {
    "tests": ["pytest", "pytest-cov"],
}

EXTRAS_REQUIRE["dev"] = EXTRAS_REQUIRE["tests"] + ["pre-commit"]


metadata = dict(
    name='workloop',
    license='MIT',
    description='Run queued work items in isolated worker processes',
    version='0.1.0',
    keywords='',
    python_requires=">=3.6",
    zip_safe=False,
    classifiers=CLASSIFIERS,
    entry_points={'console_scripts': console_scripts},
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    package_data={},
    packages=find_packages(where='src'),
    package_dir={"": "src"},
)


if __name__ == '__main__':
    setup(**metadata)
