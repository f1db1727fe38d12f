"""
Tool layer: schemas, registry, dispatcher and audit trail.

Import submodules directly (`crm_gateway.tools.dispatcher`, ...); this
package keeps no re-exports so adapters can depend on `tools.types` alone.
"""
