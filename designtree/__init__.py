"""designtree: förenklade Figma-nodträd och bildefterbearbetning."""

__version__ = "0.1.0"
