"""
Pytest configuration and fixtures for the test suite.

Defines markers for selective test execution:
    pytest -m unit          # Fast unit tests
    pytest -m integration   # Integration tests
    pytest -m network       # Tests that mock HTTP fetches
    pytest -m slow          # Tests that take >1s
    pytest -m resilience    # Cancellation and failure handling
"""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Integration tests exercising several components")
    config.addinivalue_line("markers", "network: Tests that mock or use network access")
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")
    config.addinivalue_line("markers", "resilience: Cancellation and failure handling tests")


@pytest.fixture
def person_data():
    """Small Turtle graph with two people and a company."""
    return '''
        @prefix : <http://example.org/> .
        @prefix xsd: <http://www.w3.org/2001/XMLSchema#> .

        :alice a :Person ;
            :name "Alice" ;
            :age 30 ;
            :knows :bob .

        :bob a :Person ;
            :name "Bob" ;
            :age 25 ;
            :worksFor :acme .

        :acme a :Company ;
            :name "ACME" .
    '''


@pytest.fixture
def person_shex():
    """ShExC schema matching person_data."""
    return '''
        PREFIX : <http://example.org/>
        PREFIX xsd: <http://www.w3.org/2001/XMLSchema#>

        :Person {
            :name xsd:string ;
            :age xsd:integer ? ;
            :knows @:Person *
        }
    '''


@pytest.fixture
def person_shacl():
    """SHACL shapes graph (Turtle) matching person_data."""
    return '''
        @prefix : <http://example.org/> .
        @prefix sh: <http://www.w3.org/ns/shacl#> .
        @prefix xsd: <http://www.w3.org/2001/XMLSchema#> .

        :PersonShape a sh:NodeShape ;
            sh:targetClass :Person ;
            sh:property [
                sh:path :name ;
                sh:datatype xsd:string ;
                sh:minCount 1 ;
                sh:maxCount 1
            ] ;
            sh:property [
                sh:path :age ;
                sh:datatype xsd:integer ;
                sh:maxCount 1
            ] .
    '''


@pytest.fixture
def temp_ttl_file(tmp_path, person_data):
    """Write person_data to a temporary Turtle file."""
    ttl_file = tmp_path / "people.ttl"
    ttl_file.write_text(person_data)
    return str(ttl_file)
