"""
Normalization of a declaration into a ResolvedConfig.

Rules, applied in order:
1. `true` (or no declaration at all) resolves every resource to inherit.
2. `false` resolves every resource to override.
3. A per-resource map uses the explicit entry, else `default`, else inherit.
4. Include lists only take effect under compose; compose without any
   include names degrades to override.
5. Exclude patterns are carried through for the post-merge filter.

A level without a parent resolves everything to override, whatever it
declares, since there is nothing to inherit from.
"""

from __future__ import annotations

import logging as _logging

import agentlinker.config.types as types

_logger = _logging.getLogger(__name__)


def declared_behaviors(
    declaration: types.BoolDeclaration | types.PerResourceDeclaration | None,
) -> dict[types.ResourceType, types.ExtendBehavior]:
    """Raw behavior table (before include degradation and parent forcing)."""
    if declaration is None:
        return {r: types.ExtendBehavior.INHERIT for r in types.ResourceType}

    if isinstance(declaration, types.BoolDeclaration):
        behavior = (
            types.ExtendBehavior.INHERIT if declaration.value else types.ExtendBehavior.OVERRIDE
        )
        return {r: behavior for r in types.ResourceType}

    extends = declaration.extends
    if isinstance(extends, bool):
        behavior = types.ExtendBehavior.INHERIT if extends else types.ExtendBehavior.OVERRIDE
        return {r: behavior for r in types.ResourceType}

    fallback = extends.default or types.ExtendBehavior.INHERIT
    return {r: extends.behavior_for(r) or fallback for r in types.ResourceType}


def resolve_config(
    declaration: types.BoolDeclaration | types.PerResourceDeclaration | None,
    *,
    has_parent: bool,
) -> types.ResolvedConfig:
    """
    Resolve a level's declaration into effective behaviors.

    Args:
        declaration: Parsed config.yaml, or None when the level has none.
        has_parent: Whether the chain has any level above this one.

    Returns:
        ResolvedConfig covering every ResourceType.
    """
    behaviors = declared_behaviors(declaration)

    include_map = (
        declaration.include
        if isinstance(declaration, types.PerResourceDeclaration)
        else types.IncludeMap()
    )
    exclude = (
        tuple(declaration.exclude)
        if isinstance(declaration, types.PerResourceDeclaration)
        else ()
    )

    include: dict[types.ResourceType, frozenset[str]] = {}
    for resource in types.ResourceType:
        names = frozenset(include_map.names_for(resource))
        behavior = behaviors[resource]

        if behavior is types.ExtendBehavior.COMPOSE and resource.is_collection:
            if names:
                include[resource] = names
            else:
                _logger.debug("compose without include names for %s, using override", resource.value)
                behaviors[resource] = types.ExtendBehavior.OVERRIDE
        elif names:
            # Accepted but without effect outside compose
            _logger.debug(
                "include list for %s ignored (behavior is %s)", resource.value, behavior.value
            )

    if not has_parent:
        behaviors = {r: types.ExtendBehavior.OVERRIDE for r in types.ResourceType}
        include = {}

    return types.ResolvedConfig(
        behaviors=behaviors,
        include=include,
        exclude=exclude,
        has_parent=has_parent,
    )
