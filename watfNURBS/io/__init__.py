"""
Text format tokenizer and configuration.
"""
