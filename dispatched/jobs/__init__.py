"""Job lifecycle engine: store, dispatcher, readiness scanner and intake control."""
