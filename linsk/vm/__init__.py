"""VM configuration types and serial console control."""