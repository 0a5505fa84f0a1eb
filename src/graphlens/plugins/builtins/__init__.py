"""Built-in plugins registered by :class:`graphlens.plugins.PluginManager`."""
