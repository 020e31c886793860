from setuptools import find_packages, setup

VERSION = "0.1.0"


def readme():
	with open("README.md", "r", encoding="utf-8") as fh:
		return fh.read()


setup(
	name="exhibit-server",
	version=VERSION,
	description="A development HTTP/1.1 server for example pages, with static assets, dev builds and live reload",
	long_description=readme(),
	long_description_content_type="text/markdown",
	packages=find_packages(where="src/py"),
	package_dir={"": "src/py"},
	classifiers=[
		"Development Status :: 4 - Beta",
		"Intended Audience :: Developers",
		"License :: OSI Approved :: MIT License",
		"Operating System :: POSIX",
		"Programming Language :: Python :: 3",
		"Programming Language :: Python :: 3.10",
		"Programming Language :: Python :: 3.11",
		"Programming Language :: Python :: 3.12",
		"Topic :: Internet :: WWW/HTTP :: HTTP Servers",
		"Topic :: Software Development :: Build Tools",
	],
	python_requires=">=3.10",
	install_requires=[],
	extras_require={
		"dev": [
			"mypy",
			"flake8",
			"bandit",
		],
		"test": [
			"pytest",
		],
	},
	entry_points={
		"console_scripts": [
			"exhibit=exhibit.__main__:main",
		],
	},
	include_package_data=True,
	zip_safe=False,
)
