VERSION = "1.4.0"
TOOL_NAME = "QAstell"
INFORMATION_URI = "https://qastell.eu"
