"""Modbus PDU codec and request/response dispatch, with an MCP tool server."""
