"""
Registry for installer modules.

This module provides a registry for installer modules to register themselves
and a decorator for registering installer classes.
"""

from typing import Any, Dict, Optional, Type

from installer.base_installer import BaseInstaller


class InstallerRegistry:
    """
    Registry for installer modules.
    """

    _registry: Dict[str, Type[BaseInstaller]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Decorator for registering installer classes.

        Args:
            name: The name of the installer.
            metadata: Optional metadata for the installer, such as the
                      description and estimated installation time.

        Returns:
            A decorator function that registers the installer class.
        """

        def decorator(
            installer_class: Type[BaseInstaller],
        ) -> Type[BaseInstaller]:
            if name in cls._registry:
                raise ValueError(
                    f"Installer with name '{name}' already registered"
                )

            if metadata:
                installer_class.metadata = metadata

            cls._registry[name] = installer_class
            return installer_class

        return decorator

    @classmethod
    def get_installer(cls, name: str) -> Type[BaseInstaller]:
        """
        Get an installer class by name.

        Raises:
            KeyError: If no installer with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No installer registered with name '{name}'")

        return cls._registry[name]

    @classmethod
    def get_all_installers(cls) -> Dict[str, Type[BaseInstaller]]:
        """
        Get all registered installers.
        """
        return cls._registry.copy()
