"""SmartPOS multi-tenant point-of-sale backend."""
