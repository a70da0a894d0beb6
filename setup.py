#!/usr/bin/env python3

from setuptools import setup, find_packages
import os

def read_readme():
    if os.path.exists('README.md'):
        with open('README.md', 'r', encoding='utf-8') as f:
            return f.read()
    return "Proxy engine supervisor with automatic tunnel DNS"

def read_requirements():
    if os.path.exists('requirements.txt'):
        with open('requirements.txt', 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    return ['psutil>=5.9.0']

setup(
    name='proxy-supervisor',
    version='1.0.0',
    description='Proxy engine supervisor with automatic tunnel DNS',
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    author='Proxy Supervisor Team',
    author_email='admin@example.com',
    url='https://github.com/example/proxy-supervisor',
    
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    
    install_requires=read_requirements(),
    extras_require={
        'test': ['pytest>=7.0'],
    },
    
    entry_points={
        'console_scripts': [
            'proxy-supervisor=proxy_supervisor.main:main',
        ],
    },
    
    classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Environment :: Console',
        'Intended Audience :: End Users/Desktop',
        'License :: OSI Approved :: MIT License',
        'Operating System :: MacOS :: MacOS X',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Internet :: Proxy Servers',
        'Topic :: System :: Networking',
    ],
    
    python_requires='>=3.9',
)
