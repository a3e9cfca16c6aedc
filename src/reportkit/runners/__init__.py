from .runner import Engine, SuiteLoadError, TestCase, TestContainer, TestRunner, load_suite

__all__ = ["Engine", "SuiteLoadError", "TestCase", "TestContainer", "TestRunner", "load_suite"]
