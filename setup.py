import os
from setuptools import setup

about = {}
with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'dirdump', '_version.py')) as f:
	exec(f.read(), about)
__version__ = about['__version__']

setup(
	name='dirdump',
	version=__version__,
	description='Dump users, groups, domains and global catalogs of an Active Directory forest',
	long_description=open('README.md').read(),
	long_description_content_type='text/markdown',
	packages=[
		'dirdump',
		'dirdump.utils',
		'dirdump.lib',
	],
	license='MIT',
	python_requires='>=3.8',
	install_requires=[
		'impacket',
		'ldap3',
		'dnspython',
		'validators',
		'tabulate',
	],
	extras_require={
		'kerberos': ['gssapi'],
		'test': ['pytest'],
	},
	classifiers=[
		'Intended Audience :: Information Technology',
		'License :: OSI Approved :: MIT License',
		'Programming Language :: Python :: 3.8',
		'Programming Language :: Python :: 3.9',
		'Programming Language :: Python :: 3.10',
		'Programming Language :: Python :: 3.11',
		'Programming Language :: Python :: 3.12',
	],
	entry_points= {
		'console_scripts': ['dirdump=dirdump:main']
	}
)
