"""Site services complaint tracker."""
