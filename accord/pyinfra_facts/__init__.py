"""Custom PyInfra facts used by Accord operations."""
