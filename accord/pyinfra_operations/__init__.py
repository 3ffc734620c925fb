"""Custom PyInfra operations used by generated Accord deploy files."""
